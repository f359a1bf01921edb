import logging
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from statsmodels.stats.weightstats import DescrStatsW

from .data import DocumentFeatureMatrix
from .lexicon import SentimentLexicon
from .model import jst, jst_reversed

logger = logging.getLogger(__name__)


@dataclass
class ReliabilityResult:
    runs: pd.DataFrame     # one row per run and document
    summary: pd.DataFrame  # one row per document and sentiment label
    n_runs: int


def document_sentiment(result) -> np.ndarray:
    """D x S sentiment distribution of each document.

    For the reversed model pi is per topic, so it is marginalised with theta.
    """
    if result.is_reversed:
        return np.einsum('dk,dks->ds', result.theta, result.pi)
    return result.pi


def _fit_once(dfm, lexicon, reversed_model, seed, fit_kwargs) -> np.ndarray:
    fit = jst_reversed if reversed_model else jst
    result = fit(dfm, lexicon, random_state=np.random.default_rng(seed), **fit_kwargs)
    return document_sentiment(result)


def spawn_seeds(random_state, n_runs: int) -> list:
    """Independent per-run seeds from an int, a SeedSequence or a Generator."""
    if isinstance(random_state, (np.random.Generator, np.random.SeedSequence)):
        return random_state.spawn(n_runs)
    try:
        return np.random.SeedSequence(random_state).spawn(n_runs)
    except TypeError as err:
        raise ValueError(
            f"random_state must be None, an int, a SeedSequence or a Generator, not {type(random_state).__name__}"
        ) from err


def summarise_runs(runs: pd.DataFrame, value_columns: Sequence[str], by: str = 'doc_id',
                   confidence: float = 0.95) -> pd.DataFrame:
    """Mean, standard deviation, standard error and t confidence interval per group."""
    if not 0 < confidence < 1:
        raise ValueError("confidence must be in (0, 1)")
    rows = []
    for key, group in runs.groupby(by, sort=False):
        for col in value_columns:
            x = group[col].to_numpy(dtype=np.float64)
            n = len(x)
            stats = DescrStatsW(x)
            mean = float(stats.mean)
            if n > 1:
                sd = float(stats.std_ddof(1))
                lower, upper = stats.tconfint_mean(alpha=1 - confidence)
            else:
                sd = 0.0
                lower = upper = mean
            if sd == 0.0:
                lower = upper = mean
            rows.append({by: key, 'sentiment': col, 'n': n, 'mean': mean, 'sd': sd,
                         'se': sd / np.sqrt(n), 'ci_lower': float(lower), 'ci_upper': float(upper)})
    return pd.DataFrame(rows)


def jst_reliability(dfm: DocumentFeatureMatrix, lexicon: SentimentLexicon, n_runs: int = 10,
                    n_cores: int = 1, reversed_model: bool = False, random_state=None,
                    confidence: float = 0.95, **fit_kwargs) -> ReliabilityResult:
    """Fit the model ``n_runs`` times and summarise the per-document sentiment.

    Runs use independent seeds spawned from ``random_state`` (None, an int, a
    SeedSequence or a Generator) and are spread over ``n_cores`` worker
    processes (-1 uses every core).
    """
    if n_runs < 1:
        raise ValueError("n_runs must be at least 1")
    seeds = spawn_seeds(random_state, n_runs)
    logger.info("fitting %d %s runs on %s core(s)", n_runs,
                'reversed JST' if reversed_model else 'JST', n_cores)
    if n_cores == 1:
        outputs = [_fit_once(dfm, lexicon, reversed_model, s, fit_kwargs) for s in seeds]
    else:
        outputs = Parallel(n_jobs=n_cores)(
            delayed(_fit_once)(dfm, lexicon, reversed_model, s, fit_kwargs) for s in seeds)

    S = outputs[0].shape[1]
    value_columns = [f'sent{l + 1}' for l in range(S)]
    docvars = dfm.docvars.reset_index(drop=True)
    frames: List[pd.DataFrame] = []
    for run, values in enumerate(outputs, start=1):
        df = pd.DataFrame(values, columns=value_columns)
        df.insert(0, 'run', run)
        frames.append(pd.concat([df, docvars], axis=1))
    runs = pd.concat(frames, ignore_index=True)

    summary = summarise_runs(runs, value_columns, by='doc_id', confidence=confidence)
    extra = [c for c in docvars.columns if c != 'doc_id']
    if extra:
        summary = summary.merge(docvars, on='doc_id', how='left')
    return ReliabilityResult(runs=runs, summary=summary, n_runs=n_runs)
