import os
from typing import Optional

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from matplotlib.gridspec import GridSpec
from matplotlib.ticker import FormatStrFormatter

# avoid boxes in place of minus signs
plt.rcParams['axes.unicode_minus'] = False
sns.set_style('whitegrid')


def _save(fig, output_dir: str, picname: str, suffix: str) -> str:
    os.makedirs(output_dir, exist_ok=True)
    out_path = os.path.join(output_dir, f'{picname}_{suffix}.png')
    fig.savefig(out_path, dpi=180, bbox_inches='tight')
    plt.close(fig)
    return out_path


def plot_sentiment_over_time(frame: pd.DataFrame, output_dir: str, picname: str,
                             value: str = 'net_sentiment', date_col: str = 'date',
                             by: Optional[str] = 'country', title: str = 'Sentiment over time') -> str:
    """One line per group of a per-document sentiment column against the document date."""
    missing = [c for c in (value, date_col) + ((by,) if by else ()) if c not in frame.columns]
    if missing:
        raise KeyError(f"columns {missing} not in frame")
    data = frame.sort_values(date_col)
    fig, ax = plt.subplots(figsize=(12, 5), dpi=180)
    sns.lineplot(data=data, x=date_col, y=value, hue=by, marker='o', errorbar=None, ax=ax)
    if value == 'net_sentiment':
        ax.axhline(0, color='grey', lw=1, ls='--')
    ax.set_xlabel('Date')
    ax.set_ylabel(value.replace('_', ' ').capitalize())
    ax.set_title(title)
    plt.setp(ax.get_xticklabels(), rotation=45, ha='right')
    return _save(fig, output_dir, picname, 'sentiment_over_time')


def plot_reliability(summary: pd.DataFrame, output_dir: str, picname: str,
                     sentiment: str = 'sent2', order_by: str = 'date', by: Optional[str] = 'country',
                     confidence: float = 0.95, title: str = 'Mean sentiment across runs') -> str:
    """Mean of each document over repeated runs with its confidence interval."""
    data = summary[summary['sentiment'] == sentiment]
    if data.empty:
        raise KeyError(f"no rows for sentiment '{sentiment}'")
    if by and by not in data.columns:
        raise KeyError(f"grouping column '{by}' not found")
    if order_by in data.columns:
        data = data.sort_values(order_by)
    data = data.reset_index(drop=True)
    x = np.arange(len(data))
    fig, ax = plt.subplots(figsize=(max(8, 0.35 * len(data)), 5), dpi=180)
    yerr = np.clip(np.vstack([data['mean'] - data['ci_lower'], data['ci_upper'] - data['mean']]), 0, None)
    groups = data[by] if by else pd.Series('all', index=data.index)
    palette = sns.color_palette(n_colors=groups.nunique())
    for color, (name, idx) in zip(palette, groups.groupby(groups, sort=False).groups.items()):
        idx = np.asarray(list(idx))
        ax.errorbar(x[idx], data.loc[idx, 'mean'], yerr=yerr[:, idx], fmt='o', ms=4,
                    capsize=3, color=color, label=str(name))
    ax.set_xticks(x)
    ax.set_xticklabels(data['doc_id'], rotation=90, fontsize=7)
    ax.set_ylabel(f'{sentiment} (mean, {int(round(100 * confidence))}% CI)')
    ax.set_title(title)
    if groups.nunique() > 1:
        ax.legend(loc='lower center', bbox_to_anchor=(0.5, -0.35), ncol=4, frameon=False)
    return _save(fig, output_dir, picname, 'reliability')


def plot_top_words(top_long: pd.DataFrame, output_dir: str, picname: str, max_words: int = 8,
                   title: str = 'Topic-Sentiment words') -> str:
    """Grid of bar charts: rows are sentiment labels, columns are topics."""
    df = top_long.sort_values(['topic', 'sentiment', 'rank'])
    topics = sorted(df['topic'].unique())
    sentiments = sorted(df['sentiment'].unique())
    n_cols = len(topics) + 1
    n_rows = len(sentiments)
    fig = plt.figure(figsize=(3.2 * n_cols, 0.5 * max_words * n_rows + 1.5))
    gs = GridSpec(n_rows + 1, n_cols, figure=fig, hspace=0.1, height_ratios=[0.2] + [1] * n_rows)
    for j, topic in enumerate(topics):
        ax = fig.add_subplot(gs[0, j])
        ax.text(0.5, 0.5, f'Topic {topic}', ha='center', va='center', fontsize=12,
                fontweight='bold', transform=ax.transAxes)
        ax.axis('off')
    global_max = df['probability'].max()
    for i, senti in enumerate(sentiments):
        for j, topic in enumerate(topics):
            cell = df[(df['topic'] == topic) & (df['sentiment'] == senti)].head(max_words)
            if cell.empty:
                continue
            ax = fig.add_subplot(gs[i + 1, j])
            bars = ax.barh(range(len(cell)), cell['probability'], color='lightblue', edgecolor='navy')
            for bar, word in zip(bars, cell['word']):
                ax.text(bar.get_x() + bar.get_width() / 2, bar.get_y() + bar.get_height() / 2,
                        word, ha='center', va='center', fontsize=8)
            ax.invert_yaxis()
            ax.yaxis.set_visible(False)
            ax.set_xlim(0, global_max * 1.1)
            if i == n_rows - 1:
                ax.xaxis.set_major_formatter(FormatStrFormatter('%.2f'))
                plt.setp(ax.get_xticklabels(), rotation=45, ha='right')
            else:
                ax.xaxis.set_visible(False)
            for spine in ax.spines.values():
                spine.set_visible(False)
    for i, senti in enumerate(sentiments):
        ax = fig.add_subplot(gs[i + 1, -1])
        ax.text(0.5, 0.5, f'sent{senti}', ha='center', va='center', fontsize=11,
                fontweight='bold', transform=ax.transAxes, rotation=90)
        ax.axis('off')
    fig.suptitle(title, fontsize=14)
    return _save(fig, output_dir, picname, 'top_words')


def plot_loglik(loglik, output_dir: str, picname: str) -> str:
    fig, ax = plt.subplots(figsize=(10, 5), dpi=180)
    ax.plot(np.arange(1, len(loglik) + 1), loglik, color='#2563eb', lw=2)
    ax.set_title('Sampler log-likelihood')
    ax.set_xlabel('Iteration')
    ax.set_ylabel('log p(w | l, z)')
    return _save(fig, output_dir, picname, 'loglik')
