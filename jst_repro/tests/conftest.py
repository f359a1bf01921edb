import matplotlib
matplotlib.use('Agg')

import pandas as pd
import pytest

from jst_repro.jst.corpus import corpus_from_frame
from jst_repro.jst.data import build_dfm
from jst_repro.jst.lexicon import paradigm

TEXTS = [
    "Good economy, good growth and excellent jobs.",
    "Bad crisis, poor debt and the wrong unemployment policy.",
    "Growth, jobs, economy and investment are good.",
    "Debt crisis: bad banks, poor savers.",
    "Banks, investment and growth give a positive outlook.",
    "Unemployment crisis and a negative, poor outlook.",
]


@pytest.fixture
def small_corpus():
    df = pd.DataFrame({
        'text': TEXTS,
        'country': ['Germany', 'France', 'Germany', 'France', 'Italy', 'Italy'],
        'date': ['2012-01-05', '2012-03-01', '2013-06-11', '2014-02-20', '2015-09-30', '2016-12-01'],
    })
    return corpus_from_frame(df)


@pytest.fixture
def small_dfm(small_corpus):
    return build_dfm(small_corpus, remove_stopwords=True, stopwords=['and', 'the', 'a', 'are', 'give'])


@pytest.fixture
def lexicon():
    return paradigm()
