"""
Collapsed Gibbs samplers for the Joint Sentiment/Topic model (Lin & He 2009)
and its reversed, topic-first variant.

Both models assign every token an (outer, inner) pair and keep the same four
count tables, so one sampler serves both:

  JST   outer = sentiment l, inner = topic z   (l ~ pi_d, z ~ theta_{d,l})
  rJST  outer = topic z, inner = sentiment l   (z ~ theta_d, l ~ pi_{d,z})

  n_do[d, o]        tokens of document d with outer label o
  n_doi[d, o, i]    ... and inner label i
  n_oiw[o, i, w]    occurrences of word w under (o, i)
  n_oi[o, i]        tokens under (o, i)

The lexicon prior scales beta along the sentiment axis.
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Tuple

import numpy as np
import pandas as pd
from scipy.special import digamma, gammaln

from .data import DocumentFeatureMatrix
from .lexicon import SentimentLexicon

logger = logging.getLogger(__name__)


@dataclass
class JSTParams:
    num_senti_labs: int = 3
    num_topics: int = 10
    num_iters: int = 3
    update_para_step: int = -1
    alpha: float = -1
    beta: float = -1
    gamma: float = -1
    exclude_neutral: bool = False

    def validate(self):
        if self.num_topics < 1:
            raise ValueError("num_topics must be at least 1")
        if self.num_iters < 1:
            raise ValueError("num_iters must be at least 1")
        if self.exclude_neutral:
            if self.num_senti_labs not in (2, 3):
                raise ValueError("exclude_neutral keeps exactly the positive and negative labels")
            self.num_senti_labs = 2
        elif self.num_senti_labs < 3:
            raise ValueError("num_senti_labs must be at least 3 (neutral, positive, negative) "
                             "unless exclude_neutral is set")
        return self

    def resolve(self, avg_doc_length: float, reversed_model: bool = False) -> 'JSTParams':
        """Replace the -1 sentinels with the defaults of the reference JST code."""
        S, K = self.num_senti_labs, self.num_topics
        p = JSTParams(**asdict(self))
        if p.alpha <= 0:
            p.alpha = (avg_doc_length * 0.05) / (K if reversed_model else S * K)
        if p.beta <= 0:
            p.beta = 0.01
        if p.gamma <= 0:
            p.gamma = (avg_doc_length * 0.05) / S
        # empty corpora would give zero priors
        p.alpha = max(p.alpha, 1e-3)
        p.gamma = max(p.gamma, 1e-3)
        return p


@dataclass
class _ResultBase:
    features: List[str]
    docvars: pd.DataFrame
    num_topics: int
    num_senti_labs: int
    alpha: np.ndarray
    beta: float
    gamma: float
    loglik: List[float] = field(default_factory=list)
    params: Dict[str, object] = field(default_factory=dict)


@dataclass
class JSTResult(_ResultBase):
    pi: np.ndarray = None               # D x S
    theta: np.ndarray = None            # D x S x K
    phi: np.ndarray = None              # S x K x V
    phi_term_scores: np.ndarray = None  # S x K x V

    is_reversed = False


@dataclass
class ReversedJSTResult(_ResultBase):
    theta: np.ndarray = None  # D x K
    pi: np.ndarray = None     # D x K x S
    phi: np.ndarray = None    # K x S x V

    is_reversed = True


def expand_tokens(counts) -> Tuple[np.ndarray, np.ndarray]:
    """Turn a sparse D x V count matrix into parallel (doc, word) token arrays."""
    counts = counts.tocsr()
    doc_idx = []
    word_idx = []
    for d in range(counts.shape[0]):
        start, end = counts.indptr[d], counts.indptr[d + 1]
        words = counts.indices[start:end]
        reps = counts.data[start:end].astype(np.int64)
        doc_idx.append(np.full(int(reps.sum()), d, dtype=np.int64))
        word_idx.append(np.repeat(words, reps))
    if not doc_idx:
        return np.zeros(0, dtype=np.int64), np.zeros(0, dtype=np.int64)
    return np.concatenate(doc_idx), np.concatenate(word_idx).astype(np.int64)


def dirichlet_fixed_point(prior: np.ndarray, counts: np.ndarray, totals: np.ndarray,
                          max_iter: int = 20, tol: float = 1e-6) -> np.ndarray:
    """Minka's fixed-point update of an asymmetric Dirichlet prior.

    counts: N x C observed category counts, totals: their row sums.
    """
    a = prior.astype(np.float64).copy()
    for _ in range(max_iter):
        a0 = a.sum()
        den = (digamma(totals + a0) - digamma(a0)).sum()
        if den <= 0:
            break
        num = (digamma(counts + a) - digamma(a)).sum(axis=0)
        new = np.maximum(a * num / den, 1e-6)
        if np.max(np.abs(new - a)) < tol:
            a = new
            break
        a = new
    return a


class _CollapsedSampler:
    reversed_model = False

    def __init__(self, dfm: DocumentFeatureMatrix, lexicon: SentimentLexicon,
                 params: JSTParams, random_state=None):
        if dfm.n_features == 0:
            raise ValueError("document-feature matrix has no features")
        self.dfm = dfm
        self.params = params.validate().resolve(dfm.avg_doc_length, self.reversed_model)
        self.rng = np.random.default_rng(random_state)
        self.S = self.params.num_senti_labs
        self.K = self.params.num_topics
        self.V = dfm.n_features
        self.D = dfm.n_docs
        self.lam = lexicon.word_prior(dfm.features, self.S, self.params.exclude_neutral)  # V x S
        labels = lexicon.match(dfm.features)
        shift = 1 if self.params.exclude_neutral else 0
        self.prior_label = np.where(labels >= 0, labels - shift, -1)
        n_prior = int((self.prior_label >= 0).sum())
        logger.info("%d of %d features matched the sentiment lexicon", n_prior, self.V)
        self.docs, self.words = expand_tokens(dfm.counts)
        self.nd = np.bincount(self.docs, minlength=self.D).astype(np.float64)
        self._init_priors()
        self._init_assignments()
        self.loglik: List[float] = []

    # shapes: O = outer labels, I = inner labels
    def _init_priors(self):
        raise NotImplementedError

    def _update_priors(self):
        raise NotImplementedError

    def _label_axes(self, labels: np.ndarray, topics: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        raise NotImplementedError

    def _init_assignments(self):
        N = len(self.words)
        labels = self.rng.integers(0, self.S, size=N)
        seeded = self.prior_label[self.words]
        labels = np.where(seeded >= 0, seeded, labels)
        topics = self.rng.integers(0, self.K, size=N)
        self.outer, self.inner = self._label_axes(labels, topics)
        O, I = self.beta_oiw.shape[:2]
        self.n_do = np.zeros((self.D, O))
        self.n_doi = np.zeros((self.D, O, I))
        self.n_oiw = np.zeros((O, I, self.V))
        self.n_oi = np.zeros((O, I))
        np.add.at(self.n_do, (self.docs, self.outer), 1)
        np.add.at(self.n_doi, (self.docs, self.outer, self.inner), 1)
        np.add.at(self.n_oiw, (self.outer, self.inner, self.words), 1)
        np.add.at(self.n_oi, (self.outer, self.inner), 1)

    def _sweep(self):
        I = self.n_oi.shape[1]
        beta_sum = self.beta_oiw.sum(axis=2)
        inner_sum = self.inner_prior.sum(axis=1)
        uniform = self.rng.random(len(self.words))
        for n in range(len(self.words)):
            d = self.docs[n]
            w = self.words[n]
            o = self.outer[n]
            i = self.inner[n]
            self.n_do[d, o] -= 1
            self.n_doi[d, o, i] -= 1
            self.n_oiw[o, i, w] -= 1
            self.n_oi[o, i] -= 1

            p = ((self.n_oiw[:, :, w] + self.beta_oiw[:, :, w]) / (self.n_oi + beta_sum)
                 * (self.n_doi[d] + self.inner_prior) / (self.n_do[d] + inner_sum)[:, None]
                 * (self.n_do[d] + self.outer_prior)[:, None])
            cum = np.cumsum(p.ravel())
            k = int(np.searchsorted(cum, uniform[n] * cum[-1], side='right'))
            k = min(k, cum.size - 1)
            o, i = divmod(k, I)

            self.outer[n] = o
            self.inner[n] = i
            self.n_do[d, o] += 1
            self.n_doi[d, o, i] += 1
            self.n_oiw[o, i, w] += 1
            self.n_oi[o, i] += 1

    def log_likelihood(self) -> float:
        """log p(w | l, z) with the word distributions integrated out."""
        beta_sum = self.beta_oiw.sum(axis=2)
        ll = (gammaln(beta_sum) - gammaln(self.n_oi + beta_sum)).sum()
        ll += (gammaln(self.n_oiw + self.beta_oiw) - gammaln(self.beta_oiw)).sum()
        return float(ll)

    def run(self):
        num_iters = self.params.num_iters
        step = self.params.update_para_step
        report = max(1, num_iters // 10)
        logger.info("sampling %d tokens: %d documents, %d features, %d sentiment labels, %d topics",
                    len(self.words), self.D, self.V, self.S, self.K)
        for it in range(1, num_iters + 1):
            self._sweep()
            if step > 0 and it % step == 0:
                self._update_priors()
            self.loglik.append(self.log_likelihood())
            if it % report == 0 or it == num_iters:
                logger.info("iteration %d/%d, log-likelihood %.2f", it, num_iters, self.loglik[-1])
        return self.result()

    def phi(self) -> np.ndarray:
        return (self.n_oiw + self.beta_oiw) / (self.n_oi + self.beta_oiw.sum(axis=2))[:, :, None]

    def result(self):
        raise NotImplementedError

    def _common(self) -> dict:
        p = self.params
        return dict(features=list(self.dfm.features), docvars=self.dfm.docvars.copy(),
                    num_topics=self.K, num_senti_labs=self.S, beta=p.beta, gamma=p.gamma,
                    loglik=list(self.loglik), params=asdict(p))


class JSTSampler(_CollapsedSampler):
    reversed_model = False

    def _init_priors(self):
        p = self.params
        self.beta_oiw = p.beta * np.repeat(self.lam.T[:, None, :], self.K, axis=1)  # S x K x V
        self.inner_prior = np.full((self.S, self.K), p.alpha)  # alpha, per label
        self.outer_prior = np.full(self.S, p.gamma)

    def _label_axes(self, labels, topics):
        return labels, topics

    def _update_priors(self):
        for l in range(self.S):
            self.inner_prior[l] = dirichlet_fixed_point(self.inner_prior[l], self.n_doi[:, l, :],
                                                        self.n_do[:, l])
        logger.debug("updated alpha: %s", np.round(self.inner_prior.mean(axis=1), 4))

    def result(self) -> JSTResult:
        alpha = self.inner_prior
        pi = (self.n_do + self.outer_prior) / (self.nd + self.outer_prior.sum())[:, None]
        theta = (self.n_doi + alpha[None, :, :]) / (self.n_do + alpha.sum(axis=1))[:, :, None]
        phi = self.phi()
        log_phi = np.log(phi)
        flat = log_phi.reshape(-1, self.V)
        term_scores = phi * (log_phi - flat.mean(axis=0)[None, None, :])
        return JSTResult(alpha=alpha.copy(), pi=pi, theta=theta, phi=phi,
                         phi_term_scores=term_scores, **self._common())


class ReversedJSTSampler(_CollapsedSampler):
    reversed_model = True

    def _init_priors(self):
        p = self.params
        self.beta_oiw = p.beta * np.repeat(self.lam.T[None, :, :], self.K, axis=0)  # K x S x V
        self.inner_prior = np.full((self.K, self.S), p.gamma)
        self.outer_prior = np.full(self.K, p.alpha)  # alpha over topics

    def _label_axes(self, labels, topics):
        return topics, labels

    def _update_priors(self):
        self.outer_prior = dirichlet_fixed_point(self.outer_prior, self.n_do, self.nd)
        logger.debug("updated alpha: %s", np.round(self.outer_prior, 4))

    def result(self) -> ReversedJSTResult:
        alpha = self.outer_prior
        theta = (self.n_do + alpha) / (self.nd + alpha.sum())[:, None]
        gamma = self.inner_prior
        pi = (self.n_doi + gamma[None, :, :]) / (self.n_do + gamma.sum(axis=1))[:, :, None]
        return ReversedJSTResult(alpha=alpha.copy(), theta=theta, pi=pi, phi=self.phi(),
                                 **self._common())


def jst(dfm: DocumentFeatureMatrix, lexicon: SentimentLexicon, num_senti_labs: int = 3,
        num_topics: int = 10, num_iters: int = 3, update_para_step: int = -1,
        alpha: float = -1, beta: float = -1, gamma: float = -1,
        exclude_neutral: bool = False, random_state=None) -> JSTResult:
    """Fit a Joint Sentiment/Topic model by collapsed Gibbs sampling."""
    params = JSTParams(num_senti_labs=num_senti_labs, num_topics=num_topics, num_iters=num_iters,
                       update_para_step=update_para_step, alpha=alpha, beta=beta, gamma=gamma,
                       exclude_neutral=exclude_neutral)
    return JSTSampler(dfm, lexicon, params, random_state=random_state).run()


def jst_reversed(dfm: DocumentFeatureMatrix, lexicon: SentimentLexicon, num_senti_labs: int = 3,
                 num_topics: int = 10, num_iters: int = 3, update_para_step: int = -1,
                 alpha: float = -1, beta: float = -1, gamma: float = -1,
                 exclude_neutral: bool = False, random_state=None) -> ReversedJSTResult:
    """Fit a reversed (topic-first) Joint Sentiment/Topic model."""
    params = JSTParams(num_senti_labs=num_senti_labs, num_topics=num_topics, num_iters=num_iters,
                       update_para_step=update_para_step, alpha=alpha, beta=beta, gamma=gamma,
                       exclude_neutral=exclude_neutral)
    return ReversedJSTSampler(dfm, lexicon, params, random_state=random_state).run()
