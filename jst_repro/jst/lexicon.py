import os
import json
import fnmatch
from dataclasses import dataclass, field
from typing import List, Sequence

import numpy as np
import pandas as pd

from .data import _ensure_nltk

# sentiment labels used by the samplers: 0 neutral, 1 positive, 2 negative
NEUTRAL, POSITIVE, NEGATIVE = 0, 1, 2
NO_PRIOR = -1

# weights written to the JST lexicon file for a matched word
PRIOR_MATCH = 0.9
PRIOR_OTHER = 0.05


@dataclass
class SentimentLexicon:
    positive: List[str] = field(default_factory=list)
    negative: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.positive) + len(self.negative)

    @staticmethod
    def _matches(word: str, patterns: Sequence[str]) -> bool:
        for p in patterns:
            if '*' in p or '?' in p:
                if fnmatch.fnmatchcase(word, p):
                    return True
            elif word == p:
                return True
        return False

    def match(self, features: Sequence[str]) -> np.ndarray:
        """Prior sentiment label per feature (-1 when the word is not in the lexicon)."""
        pos = [p.lower() for p in self.positive]
        neg = [p.lower() for p in self.negative]
        labels = np.full(len(features), NO_PRIOR, dtype=np.int64)
        for i, w in enumerate(features):
            w = w.lower()
            is_pos = self._matches(w, pos)
            is_neg = self._matches(w, neg)
            if is_pos and not is_neg:
                labels[i] = POSITIVE
            elif is_neg and not is_pos:
                labels[i] = NEGATIVE
        return labels

    def word_prior(self, features: Sequence[str], num_senti_labs: int = 3,
                   exclude_neutral: bool = False) -> np.ndarray:
        """V x S multiplier for beta; rows of unmatched words are all ones."""
        labels = self.match(features)
        lam = np.ones((len(features), num_senti_labs))
        shift = 1 if exclude_neutral else 0  # without neutral, positive is 0 and negative is 1
        for v in np.flatnonzero(labels >= 0):
            lam[v, :] = PRIOR_OTHER
            lam[v, labels[v] - shift] = PRIOR_MATCH
        return lam


def paradigm() -> SentimentLexicon:
    """Turney & Littman (2003) paradigm words, with wildcards for inflected forms."""
    return SentimentLexicon(
        positive=['good', 'nice', 'excellen*', 'positiv*', 'fortunat*', 'correct*', 'superior*'],
        negative=['bad', 'nasty', 'poor*', 'negativ*', 'unfortunat*', 'wrong*', 'inferior*'],
    )


def load_lexicon(path: str) -> SentimentLexicon:
    if not os.path.exists(path):
        raise FileNotFoundError(path)
    ext = os.path.splitext(path)[1].lower()
    if ext == '.json':
        with open(path, 'r', encoding='utf-8') as f:
            raw = json.load(f)
        missing = {'positive', 'negative'} - set(raw)
        if missing:
            raise KeyError(f"lexicon file is missing {sorted(missing)}")
        return SentimentLexicon(positive=list(raw['positive']), negative=list(raw['negative']))
    if ext in ('.csv', '.tsv'):
        df = pd.read_csv(path, sep='\t' if ext == '.tsv' else ',')
        if not {'word', 'sentiment'} <= set(df.columns):
            raise KeyError("lexicon table needs 'word' and 'sentiment' columns")
        senti = df['sentiment'].astype(str).str.lower()
        return SentimentLexicon(positive=df.loc[senti == 'positive', 'word'].astype(str).tolist(),
                                negative=df.loc[senti == 'negative', 'word'].astype(str).tolist())
    raise ValueError(f"unsupported lexicon file type '{ext}'")


def from_nltk_opinion_lexicon() -> SentimentLexicon:
    _ensure_nltk('opinion_lexicon', 'corpora/opinion_lexicon')
    from nltk.corpus import opinion_lexicon
    return SentimentLexicon(positive=list(opinion_lexicon.positive()),
                            negative=list(opinion_lexicon.negative()))
