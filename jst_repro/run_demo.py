import os
import logging
import argparse

import pandas as pd

from jst_repro.jst.corpus import load_corpus, load_sample_speeches, subset_corpus
from jst_repro.jst.data import build_dfm
from jst_repro.jst.lexicon import paradigm
from jst_repro.jst.model import jst, jst_reversed
from jst_repro.jst.params import get_parameter, top20words, top_words_long
from jst_repro.jst.reliability import jst_reliability
from jst_repro.jst.viz import plot_sentiment_over_time, plot_top_words, plot_reliability, plot_loglik

"""
Tutorial runner:
- Load the speech corpus and keep a few countries over a date window
- Build a document-feature matrix (punctuation, numbers and stopwords removed)
- Fit JST with the paradigm-word lexicon and look at document sentiment over time
- Print the top words of each topic-sentiment pair
- Fit the reversed (topic-first) model and extract its theta and pi tables
- Repeat the JST fit many times and plot mean sentiment with confidence intervals
"""

OUTPUT_DIR = 'output'
COUNTRIES = ['Germany', 'France', 'Italy', 'Spain']
START, END = '2010-01-01', '2019-12-31'
K = 5              # topics
NUM_ITERS = 200    # Gibbs sweeps per fit
MIN_TERMFREQ = 2
N_RUNS = 10        # repeated fits for the reliability check
N_CORES = 1
SEED = 42
SENTIMENT_NAMES = {'sent1': 'neutral', 'sent2': 'positive', 'sent3': 'negative'}


def parse_args():
    parser = argparse.ArgumentParser(description='JST / reversed JST analysis of a speech corpus')
    parser.add_argument('--data', default=None, help='corpus file (csv, json, parquet, pickle); '
                                                     'defaults to the bundled speeches')
    parser.add_argument('--countries', nargs='+', default=COUNTRIES)
    parser.add_argument('--topics', type=int, default=K)
    parser.add_argument('--iters', type=int, default=NUM_ITERS)
    parser.add_argument('--runs', type=int, default=N_RUNS)
    parser.add_argument('--cores', type=int, default=N_CORES)
    parser.add_argument('--seed', type=int, default=SEED)
    parser.add_argument('--output', default=OUTPUT_DIR)
    return parser.parse_args()


def main():
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    os.makedirs(args.output, exist_ok=True)

    corpus = load_corpus(args.data) if args.data else load_sample_speeches()
    corpus = subset_corpus(corpus, country=args.countries, start=START, end=END)
    print(f'{len(corpus)} speeches from {", ".join(args.countries)}')

    dfm = build_dfm(corpus, remove_punct=True, remove_numbers=True, remove_stopwords=True,
                    stem=False, min_termfreq=MIN_TERMFREQ)
    print(f'dfm: {dfm.n_docs} documents x {dfm.n_features} features')
    lexicon = paradigm()

    # JST: sentiment first, then topic
    model = jst(dfm, lexicon, num_topics=args.topics, num_iters=args.iters, random_state=args.seed)
    pi = get_parameter(model, 'pi').rename(columns=SENTIMENT_NAMES)
    pi['net_sentiment'] = pi['positive'] - pi['negative']
    pi.to_csv(os.path.join(args.output, 'jst_pi.csv'), index=False)
    print(pi.groupby('country')[['positive', 'negative', 'net_sentiment']].mean().round(3))
    trend_path = plot_sentiment_over_time(pi, args.output, picname='jst', value='net_sentiment',
                                          title='Net sentiment of speeches (JST)')
    loglik_path = plot_loglik(model.loglik, args.output, picname='jst')

    top = top20words(model)
    top.to_csv(os.path.join(args.output, 'jst_top20words.csv'), index=False)
    with pd.option_context('display.max_columns', 6, 'display.width', 160):
        print(top.head(10))
    words_path = plot_top_words(top_words_long(model, n=10), args.output, picname='jst')

    # reversed JST: topic first, then sentiment within topic
    rmodel = jst_reversed(dfm, lexicon, num_topics=args.topics, num_iters=args.iters,
                          random_state=args.seed)
    rtheta = get_parameter(rmodel, 'theta')
    rpi = get_parameter(rmodel, 'pi')
    rtheta.to_csv(os.path.join(args.output, 'rjst_theta.csv'), index=False)
    rpi.to_csv(os.path.join(args.output, 'rjst_pi.csv'), index=False)
    topic_cols = [c for c in rtheta.columns if c.startswith('topic')]
    print(rtheta.groupby('country')[topic_cols].mean().round(3))

    # stability of document sentiment across repeated fits
    rel = jst_reliability(dfm, lexicon, n_runs=args.runs, n_cores=args.cores, random_state=args.seed,
                          num_topics=args.topics, num_iters=args.iters)
    rel.summary.to_csv(os.path.join(args.output, 'jst_reliability.csv'), index=False)
    rel_path = plot_reliability(rel.summary, args.output, picname='jst', sentiment='sent2',
                                title=f'Positive sentiment over {args.runs} runs')
    print('Artifacts saved:', trend_path, loglik_path, words_path, rel_path)


if __name__ == '__main__':
    main()
