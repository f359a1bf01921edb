import os

import pytest

from jst_repro.jst.model import jst
from jst_repro.jst.params import get_parameter, top_words_long
from jst_repro.jst.reliability import jst_reliability
from jst_repro.jst.viz import plot_loglik, plot_reliability, plot_sentiment_over_time, plot_top_words


@pytest.fixture
def fitted(small_dfm, lexicon):
    return jst(small_dfm, lexicon, num_topics=2, num_iters=3, random_state=0)


def test_sentiment_over_time(fitted, tmp_path):
    pi = get_parameter(fitted, 'pi')
    pi['net_sentiment'] = pi['sent2'] - pi['sent3']
    path = plot_sentiment_over_time(pi, str(tmp_path / 'out'), picname='t')
    assert os.path.exists(path)
    assert path.endswith('t_sentiment_over_time.png')
    with pytest.raises(KeyError):
        plot_sentiment_over_time(pi, str(tmp_path), picname='t', value='missing')


def test_top_words_and_loglik(fitted, tmp_path):
    path = plot_top_words(top_words_long(fitted, n=4), str(tmp_path), picname='t', max_words=4)
    assert os.path.exists(path)
    assert os.path.exists(plot_loglik(fitted.loglik, str(tmp_path), picname='t'))


def test_reliability_plot(small_dfm, lexicon, tmp_path):
    rel = jst_reliability(small_dfm, lexicon, n_runs=2, random_state=0, num_topics=2, num_iters=2)
    path = plot_reliability(rel.summary, str(tmp_path), picname='t', sentiment='sent2')
    assert os.path.exists(path)
    with pytest.raises(KeyError):
        plot_reliability(rel.summary, str(tmp_path), picname='t', sentiment='sent9')


def test_reliability_plot_grouping(small_dfm, lexicon, tmp_path):
    rel = jst_reliability(small_dfm, lexicon, n_runs=2, random_state=0, num_topics=2, num_iters=2)
    with pytest.raises(KeyError):
        plot_reliability(rel.summary, str(tmp_path), picname='t', by='party')
    path = plot_reliability(rel.summary, str(tmp_path), picname='ungrouped', by=None)
    assert os.path.exists(path)
