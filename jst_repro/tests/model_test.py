import numpy as np
import pandas as pd
import pytest
from scipy import sparse

from jst_repro.jst.corpus import corpus_from_frame
from jst_repro.jst.data import build_dfm
from jst_repro.jst.model import (JSTParams, JSTSampler, ReversedJSTSampler, dirichlet_fixed_point,
                                 expand_tokens, jst, jst_reversed)

# Basic tests: shapes, normalisation, reproducibility


def test_expand_tokens():
    counts = sparse.csr_matrix(np.array([[2, 0, 1], [0, 0, 0], [0, 3, 0]]))
    docs, words = expand_tokens(counts)
    assert docs.tolist() == [0, 0, 0, 2, 2, 2]
    assert words.tolist() == [0, 0, 2, 1, 1, 1]


def test_default_hyperparameters():
    p = JSTParams(num_topics=4).validate().resolve(avg_doc_length=80)
    assert p.alpha == pytest.approx(80 * 0.05 / 12)
    assert p.beta == pytest.approx(0.01)
    assert p.gamma == pytest.approx(80 * 0.05 / 3)
    r = JSTParams(num_topics=4).validate().resolve(avg_doc_length=80, reversed_model=True)
    assert r.alpha == pytest.approx(80 * 0.05 / 4)
    given = JSTParams(alpha=0.5, beta=0.1, gamma=2.0).validate().resolve(avg_doc_length=80)
    assert (given.alpha, given.beta, given.gamma) == (0.5, 0.1, 2.0)


def test_invalid_arguments(small_dfm, lexicon):
    with pytest.raises(ValueError):
        jst(small_dfm, lexicon, num_topics=0)
    with pytest.raises(ValueError):
        jst(small_dfm, lexicon, num_iters=0)
    with pytest.raises(ValueError):
        jst(small_dfm, lexicon, num_senti_labs=2)
    with pytest.raises(ValueError):
        jst_reversed(small_dfm, lexicon, num_senti_labs=4, exclude_neutral=True)


def test_jst_shapes_and_normalisation(small_dfm, lexicon):
    res = jst(small_dfm, lexicon, num_topics=2, num_iters=5, random_state=0)
    D, V = small_dfm.n_docs, small_dfm.n_features
    assert res.pi.shape == (D, 3)
    assert res.theta.shape == (D, 3, 2)
    assert res.phi.shape == (3, 2, V)
    assert res.phi_term_scores.shape == (3, 2, V)
    np.testing.assert_allclose(res.pi.sum(axis=1), 1.0)
    np.testing.assert_allclose(res.theta.sum(axis=2), 1.0)
    np.testing.assert_allclose(res.phi.sum(axis=2), 1.0)
    assert len(res.loglik) == 5
    assert np.all(np.isfinite(res.loglik))
    assert not res.is_reversed
    assert res.params['num_topics'] == 2


def test_reversed_shapes_and_normalisation(small_dfm, lexicon):
    res = jst_reversed(small_dfm, lexicon, num_topics=3, num_iters=5, random_state=0)
    D, V = small_dfm.n_docs, small_dfm.n_features
    assert res.theta.shape == (D, 3)
    assert res.pi.shape == (D, 3, 3)
    assert res.phi.shape == (3, 3, V)
    np.testing.assert_allclose(res.theta.sum(axis=1), 1.0)
    np.testing.assert_allclose(res.pi.sum(axis=2), 1.0)
    np.testing.assert_allclose(res.phi.sum(axis=2), 1.0)
    assert res.is_reversed
    assert res.alpha.shape == (3,)


def test_same_seed_same_result(small_dfm, lexicon):
    a = jst(small_dfm, lexicon, num_topics=2, num_iters=4, random_state=7)
    b = jst(small_dfm, lexicon, num_topics=2, num_iters=4, random_state=7)
    np.testing.assert_array_equal(a.pi, b.pi)
    np.testing.assert_array_equal(a.phi, b.phi)
    assert a.loglik == b.loglik


def test_lexicon_words_start_on_their_label(small_dfm, lexicon):
    sampler = JSTSampler(small_dfm, lexicon, JSTParams(num_topics=2, num_iters=1), random_state=0)
    good = small_dfm.features.index('good')
    poor = small_dfm.features.index('poor')
    assert set(sampler.outer[sampler.words == good]) == {1}
    assert set(sampler.outer[sampler.words == poor]) == {2}

    rsampler = ReversedJSTSampler(small_dfm, lexicon, JSTParams(num_topics=2, num_iters=1), random_state=0)
    assert set(rsampler.inner[rsampler.words == good]) == {1}


def test_count_tables_stay_consistent(small_dfm, lexicon):
    sampler = JSTSampler(small_dfm, lexicon, JSTParams(num_topics=2, num_iters=3), random_state=1)
    sampler.run()
    n_tokens = int(small_dfm.counts.sum())
    assert sampler.n_oi.sum() == n_tokens
    np.testing.assert_array_equal(sampler.n_do.sum(axis=1), small_dfm.doc_lengths)
    np.testing.assert_array_equal(sampler.n_doi.sum(axis=2), sampler.n_do)
    np.testing.assert_array_equal(sampler.n_oiw.sum(axis=2), sampler.n_oi)
    assert (sampler.n_oiw >= 0).all()


def test_exclude_neutral(small_dfm, lexicon):
    res = jst(small_dfm, lexicon, num_topics=2, num_iters=3, exclude_neutral=True, random_state=0)
    assert res.num_senti_labs == 2
    assert res.pi.shape == (small_dfm.n_docs, 2)


def test_alpha_update(small_dfm, lexicon):
    fixed = jst(small_dfm, lexicon, num_topics=2, num_iters=4, random_state=3)
    updated = jst(small_dfm, lexicon, num_topics=2, num_iters=4, update_para_step=2, random_state=3)
    assert np.allclose(fixed.alpha, fixed.params['alpha'])
    assert not np.allclose(updated.alpha, updated.params['alpha'])
    assert (updated.alpha > 0).all()


def test_dirichlet_fixed_point_recovers_concentration():
    rng = np.random.default_rng(0)
    true = np.array([2.0, 1.0, 0.5])
    props = rng.dirichlet(true, size=400)
    counts = np.vstack([rng.multinomial(200, p) for p in props]).astype(float)
    est = dirichlet_fixed_point(np.ones(3), counts, counts.sum(axis=1), max_iter=500)
    assert est.argmax() == 0 and est.argmin() == 2
    np.testing.assert_allclose(est / est.sum(), true / true.sum(), atol=0.05)


def test_empty_document_gets_prior_sentiment(lexicon):
    corpus = corpus_from_frame(pd.DataFrame({'text': ['good growth', 'the and', 'poor growth']}))
    dfm = build_dfm(corpus, stopwords=['the', 'and'])
    assert dfm.doc_lengths[1] == 0
    res = jst(dfm, lexicon, num_topics=2, num_iters=2, random_state=0)
    np.testing.assert_allclose(res.pi[1], 1 / 3)


def test_module_docstring():
    from jst_repro.jst import model
    assert model.__doc__ and 'Joint Sentiment/Topic' in model.__doc__
