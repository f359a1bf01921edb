# Joint Sentiment/Topic (JST) and reversed JST models for speech corpora
# Lin & He (2009) JST and the topic-first reversed variant, fitted by collapsed
# Gibbs sampling, with quanteda-style corpus/dfm helpers, a sentiment lexicon
# prior, parameter tables, repeated-run reliability summaries and plots.

from .corpus import Corpus, load_corpus, load_sample_speeches, subset_corpus
from .data import DocumentFeatureMatrix, tokenize, build_dfm, trim_dfm
from .lexicon import SentimentLexicon, paradigm, load_lexicon, from_nltk_opinion_lexicon
from .model import JSTParams, JSTResult, ReversedJSTResult, jst, jst_reversed
from .params import get_parameter, top_words, top20words, top_words_long
from .reliability import jst_reliability, summarise_runs, ReliabilityResult
from .viz import plot_sentiment_over_time, plot_reliability, plot_top_words, plot_loglik
