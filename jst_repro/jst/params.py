from typing import List, Union

import numpy as np
import pandas as pd

from .model import JSTResult, ReversedJSTResult

Result = Union[JSTResult, ReversedJSTResult]

JST_PARAMETERS = ('pi', 'theta', 'phi', 'phi_term_scores')
RJST_PARAMETERS = ('pi', 'theta', 'phi')


def pair_columns(result: Result) -> List[str]:
    """topic{k}sent{l} labels in the order of the flattened outer x inner axes."""
    K, S = result.num_topics, result.num_senti_labs
    if result.is_reversed:
        return [f'topic{k + 1}sent{l + 1}' for k in range(K) for l in range(S)]
    return [f'topic{k + 1}sent{l + 1}' for l in range(S) for k in range(K)]


def _with_docvars(values: np.ndarray, columns: List[str], docvars: pd.DataFrame) -> pd.DataFrame:
    df = pd.DataFrame(values, columns=columns)
    return pd.concat([df, docvars.reset_index(drop=True)], axis=1)


def get_parameter(result: Result, name: str) -> pd.DataFrame:
    """Named parameter table of a fitted model.

    Document-level parameters (``pi``, ``theta``) come back one row per
    document with the document variables appended; word-level parameters
    (``phi``, ``phi_term_scores``) one row per feature.
    """
    valid = RJST_PARAMETERS if result.is_reversed else JST_PARAMETERS
    if name not in valid:
        raise KeyError(f"unknown parameter '{name}'; choose one of {list(valid)}")
    S, K = result.num_senti_labs, result.num_topics
    D = result.pi.shape[0]

    if name in ('phi', 'phi_term_scores'):
        values = getattr(result, name)
        flat = values.reshape(-1, values.shape[-1]).T  # V x (O*I)
        return pd.DataFrame(flat, index=pd.Index(result.features, name='feature'),
                            columns=pair_columns(result))

    if not result.is_reversed and name == 'pi':
        return _with_docvars(result.pi, [f'sent{l + 1}' for l in range(S)], result.docvars)
    if result.is_reversed and name == 'theta':
        return _with_docvars(result.theta, [f'topic{k + 1}' for k in range(K)], result.docvars)
    values = getattr(result, name).reshape(D, -1)
    return _with_docvars(values, pair_columns(result), result.docvars)


def top_words(result: Result, n: int = 20) -> pd.DataFrame:
    phi = get_parameter(result, 'phi')
    n = min(n, len(phi))
    out = {}
    for col in phi.columns:
        # stable sort keeps feature order among ties
        order = np.argsort(-phi[col].to_numpy(), kind='stable')[:n]
        out[col] = phi.index.to_numpy()[order]
    return pd.DataFrame(out)


def top20words(result: Result) -> pd.DataFrame:
    return top_words(result, n=20)


def top_words_long(result: Result, n: int = 20) -> pd.DataFrame:
    phi = get_parameter(result, 'phi')
    n = min(n, len(phi))
    rows = []
    for col in phi.columns:
        topic, senti = col[len('topic'):].split('sent')
        vals = phi[col].to_numpy()
        order = np.argsort(-vals, kind='stable')[:n]
        for rank, v in enumerate(order, start=1):
            rows.append({'topic': int(topic), 'sentiment': int(senti), 'rank': rank,
                         'word': phi.index[v], 'probability': float(vals[v])})
    return pd.DataFrame(rows)
