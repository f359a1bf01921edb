import re
import string
import logging
import unicodedata
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

import numpy as np
import pandas as pd
from scipy import sparse
from sklearn.feature_extraction.text import CountVectorizer

from .corpus import Corpus

logger = logging.getLogger(__name__)

# words (with inner hyphens/apostrophes), or any single non-space character
_token_re = re.compile(r"\w+(?:[-']\w+)*|[^\w\s]")
_number_re = re.compile(r"^[+-]?\d+(?:[.,]\d+)*(?:st|nd|rd|th|s)?$")


@dataclass
class DocumentFeatureMatrix:
    counts: sparse.csr_matrix  # D x V
    features: List[str]
    docvars: pd.DataFrame      # row aligned with counts, includes doc_id

    @property
    def n_docs(self) -> int:
        return self.counts.shape[0]

    @property
    def n_features(self) -> int:
        return self.counts.shape[1]

    @property
    def doc_lengths(self) -> np.ndarray:
        return np.asarray(self.counts.sum(axis=1)).ravel()

    @property
    def avg_doc_length(self) -> float:
        if self.n_docs == 0:
            return 0.0
        return float(self.doc_lengths.mean())

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.counts.toarray(), index=self.docvars['doc_id'].tolist(),
                            columns=self.features)


def _ensure_nltk(resource: str, path: str) -> bool:
    import nltk
    try:
        nltk.data.find(path)
        return True
    except LookupError:
        ok = nltk.download(resource, quiet=True)
    if not ok:
        logger.warning("could not download NLTK resource '%s'; install it with nltk.download('%s') "
                       "or point NLTK_DATA at a copy", resource, resource)
    return bool(ok)


def _is_punct(tok: str) -> bool:
    return all(ch in string.punctuation or unicodedata.category(ch).startswith('P') for ch in tok)


def _is_symbol(tok: str) -> bool:
    return all(unicodedata.category(ch).startswith('S') for ch in tok)


def tokenize(text: str, lowercase: bool = True, remove_punct: bool = True,
             remove_numbers: bool = True, remove_symbols: bool = True) -> List[str]:
    if lowercase:
        text = text.lower()
    tokens = _token_re.findall(text)
    out = []
    for tok in tokens:
        if remove_symbols and _is_symbol(tok):
            continue
        if remove_punct and _is_punct(tok):
            continue
        if remove_numbers and _number_re.match(tok):
            continue
        out.append(tok)
    return out


def english_stopwords() -> List[str]:
    _ensure_nltk('stopwords', 'corpora/stopwords')
    from nltk.corpus import stopwords
    return stopwords.words('english')


def _identity(tokens):
    return tokens


def trim_dfm(dfm: DocumentFeatureMatrix, min_termfreq: int = 1, min_docfreq: int = 1,
             max_docfreq: Optional[Union[int, float]] = None) -> DocumentFeatureMatrix:
    counts = dfm.counts.tocsc()
    termfreq = np.asarray(counts.sum(axis=0)).ravel()
    docfreq = np.diff(counts.indptr)
    keep = (termfreq >= min_termfreq) & (docfreq >= min_docfreq)
    if max_docfreq is not None:
        limit = max_docfreq * dfm.n_docs if isinstance(max_docfreq, float) else max_docfreq
        keep &= docfreq <= limit
    if not keep.any():
        raise ValueError("no features left after trimming")
    idx = np.flatnonzero(keep)
    dropped = dfm.n_features - len(idx)
    if dropped:
        logger.info("trimmed %d of %d features", dropped, dfm.n_features)
    return DocumentFeatureMatrix(counts=counts[:, idx].tocsr(),
                                 features=[dfm.features[i] for i in idx],
                                 docvars=dfm.docvars)


def build_dfm(corpus: Corpus, lowercase: bool = True, remove_punct: bool = True,
              remove_numbers: bool = True, remove_symbols: bool = True,
              remove_stopwords: bool = True, stopwords: Union[str, Iterable[str]] = 'english',
              stem: bool = False, min_termfreq: int = 1, min_docfreq: int = 1,
              max_docfreq: Optional[Union[int, float]] = None) -> DocumentFeatureMatrix:
    if len(corpus) == 0:
        raise ValueError("cannot build a document-feature matrix from an empty corpus")
    stops = set()
    if remove_stopwords:
        if isinstance(stopwords, str):
            if stopwords != 'english':
                raise ValueError(f"unknown stopword list '{stopwords}'")
            stops = set(english_stopwords())
        else:
            stops = {w.lower() if lowercase else w for w in stopwords}
    stemmer = None
    if stem:
        from nltk.stem import PorterStemmer
        stemmer = PorterStemmer()

    token_lists = []
    for text in corpus.texts['text']:
        toks = tokenize(text, lowercase=lowercase, remove_punct=remove_punct,
                        remove_numbers=remove_numbers, remove_symbols=remove_symbols)
        toks = [t for t in toks if t not in stops]
        if stemmer is not None:
            toks = [stemmer.stem(t) for t in toks]
        token_lists.append(toks)

    # tokens are already analysed, the vectorizer only indexes them
    vectorizer = CountVectorizer(analyzer=_identity, lowercase=False)
    try:
        counts = vectorizer.fit_transform(token_lists)
    except ValueError as e:
        raise ValueError("corpus has no tokens left after preprocessing") from e
    features = vectorizer.get_feature_names_out().tolist()
    dfm = DocumentFeatureMatrix(counts=counts.astype(np.int64).tocsr(), features=features,
                                docvars=corpus.docvars.reset_index(drop=True))
    logger.info("built dfm: %d documents x %d features", dfm.n_docs, dfm.n_features)
    if min_termfreq > 1 or min_docfreq > 1 or max_docfreq is not None:
        dfm = trim_dfm(dfm, min_termfreq=min_termfreq, min_docfreq=min_docfreq,
                       max_docfreq=max_docfreq)
    return dfm
