import numpy as np
import pandas as pd
import pytest

from jst_repro.jst.corpus import Corpus, corpus_from_frame
from jst_repro.jst.data import _ensure_nltk, build_dfm, tokenize, trim_dfm


def test_tokenize_options():
    text = "The 3 budgets, in 2012, cost $5 billion!"
    assert tokenize(text) == ['the', 'budgets', 'in', 'cost', 'billion']
    kept = tokenize(text, lowercase=False, remove_punct=False, remove_numbers=False, remove_symbols=False)
    assert kept[:4] == ['The', '3', 'budgets', ',']
    assert '$' in kept and '!' in kept


def test_tokenize_keeps_inner_apostrophes_and_hyphens():
    assert tokenize("Europe's long-term plan") == ["europe's", 'long-term', 'plan']


def test_build_dfm_counts(small_dfm):
    assert small_dfm.n_docs == 6
    assert small_dfm.features == sorted(small_dfm.features)
    assert 'and' not in small_dfm.features
    good = small_dfm.features.index('good')
    assert small_dfm.counts[0, good] == 2
    assert list(small_dfm.docvars['doc_id']) == [f'text{i}' for i in range(1, 7)]
    frame = small_dfm.to_frame()
    assert frame.shape == (6, small_dfm.n_features)
    assert frame.loc['text1', 'good'] == 2
    np.testing.assert_array_equal(small_dfm.doc_lengths, frame.sum(axis=1).to_numpy())
    assert small_dfm.avg_doc_length == pytest.approx(small_dfm.doc_lengths.mean())


def test_build_dfm_trim(small_corpus):
    dfm = build_dfm(small_corpus, remove_stopwords=False, min_termfreq=2, min_docfreq=2)
    totals = np.asarray(dfm.counts.sum(axis=0)).ravel()
    assert (totals >= 2).all()
    assert 'excellent' not in dfm.features
    assert 'crisis' in dfm.features


def test_trim_max_docfreq(small_corpus):
    dfm = build_dfm(small_corpus, remove_stopwords=False)
    trimmed = trim_dfm(dfm, max_docfreq=0.5)
    docfreq = np.asarray((trimmed.counts > 0).sum(axis=0)).ravel()
    assert (docfreq <= 3).all()
    assert 'and' not in trimmed.features
    with pytest.raises(ValueError):
        trim_dfm(dfm, min_termfreq=1000)


def test_build_dfm_stemming():
    corpus = corpus_from_frame(pd.DataFrame({'text': ['growing growth grows', 'jobs job']}))
    dfm = build_dfm(corpus, remove_stopwords=False, stem=True)
    assert 'grow' in dfm.features
    assert 'job' in dfm.features
    assert 'jobs' not in dfm.features


def test_build_dfm_empty_inputs():
    empty = corpus_from_frame(pd.DataFrame({'text': ['x']})).texts.iloc[0:0]
    with pytest.raises(ValueError):
        build_dfm(Corpus(texts=empty), remove_stopwords=False)
    only_stops = corpus_from_frame(pd.DataFrame({'text': ['and the', 'the and']}))
    with pytest.raises(ValueError):
        build_dfm(only_stops, stopwords=['and', 'the'])


def test_failed_nltk_download_is_logged(monkeypatch, caplog):
    import logging
    import nltk

    def missing(path):
        raise LookupError(path)

    monkeypatch.setattr(nltk.data, 'find', missing)
    monkeypatch.setattr(nltk, 'download', lambda *args, **kwargs: False)
    with caplog.at_level(logging.WARNING, logger='jst_repro.jst.data'):
        assert _ensure_nltk('stopwords', 'corpora/stopwords') is False
    assert "could not download NLTK resource 'stopwords'" in caplog.text
