import os
import logging
from dataclasses import dataclass
from typing import List, Optional

import pandas as pd

logger = logging.getLogger(__name__)

DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'data')
SAMPLE_SPEECHES = os.path.join(DATA_DIR, 'speeches.csv')


@dataclass
class Corpus:
    # one row per document: doc_id, text and the document variables
    texts: pd.DataFrame

    def __len__(self) -> int:
        return len(self.texts)

    @property
    def docvars(self) -> pd.DataFrame:
        return self.texts.drop(columns=['text'])

    @property
    def doc_ids(self) -> List[str]:
        return self.texts['doc_id'].tolist()


_READERS = {
    '.csv': pd.read_csv,
    '.tsv': lambda p: pd.read_csv(p, sep='\t'),
    '.json': pd.read_json,
    '.jsonl': lambda p: pd.read_json(p, lines=True),
    '.parquet': pd.read_parquet,
    '.pkl': pd.read_pickle,
    '.pickle': pd.read_pickle,
}


def corpus_from_frame(df: pd.DataFrame, text_field: str = 'text',
                      docid_field: Optional[str] = None) -> Corpus:
    if text_field not in df.columns:
        raise KeyError(f"text column '{text_field}' not found; columns are {list(df.columns)}")
    df = df.copy()
    if text_field != 'text':
        df = df.rename(columns={text_field: 'text'})
    empty = df['text'].isna() | (df['text'].astype(str).str.strip() == '')
    if empty.any():
        logger.warning("dropping %d empty documents", int(empty.sum()))
        df = df[~empty]
    df['text'] = df['text'].astype(str)
    if docid_field is not None:
        if docid_field not in df.columns:
            raise KeyError(f"doc id column '{docid_field}' not found")
        df = df.rename(columns={docid_field: 'doc_id'})
    elif 'doc_id' not in df.columns:
        df['doc_id'] = [f'text{i + 1}' for i in range(len(df))]
    df['doc_id'] = df['doc_id'].astype(str)
    dup = df['doc_id'][df['doc_id'].duplicated()].unique()
    if len(dup):
        raise ValueError(f"doc_id values must be unique; duplicated: {list(dup[:5])}")
    if 'date' in df.columns:
        df['date'] = pd.to_datetime(df['date'])
    # doc_id first, text second, docvars after
    rest = [c for c in df.columns if c not in ('doc_id', 'text')]
    df = df[['doc_id', 'text'] + rest].reset_index(drop=True)
    return Corpus(texts=df)


def load_corpus(path: str, text_field: str = 'text', docid_field: Optional[str] = None) -> Corpus:
    if not os.path.exists(path):
        raise FileNotFoundError(path)
    ext = os.path.splitext(path)[1].lower()
    reader = _READERS.get(ext)
    if reader is None:
        raise ValueError(f"unsupported corpus file type '{ext}' (expected one of {sorted(_READERS)})")
    df = reader(path)
    corpus = corpus_from_frame(df, text_field=text_field, docid_field=docid_field)
    logger.info("loaded %d documents from %s", len(corpus), path)
    return corpus


def load_sample_speeches() -> Corpus:
    return load_corpus(SAMPLE_SPEECHES, docid_field='doc_id')


def _as_list(value):
    if isinstance(value, (list, tuple, set, pd.Index)):
        return list(value)
    return [value]


def subset_corpus(corpus: Corpus, country=None, start=None, end=None, **docvars) -> Corpus:
    """Keep the documents matching every given document variable.

    ``country`` and other keyword filters accept a single value or a list of
    values; ``start``/``end`` bound the ``date`` column (inclusive).
    """
    df = corpus.texts
    mask = pd.Series(True, index=df.index)
    filters = dict(docvars)
    if country is not None:
        filters['country'] = country
    for name, value in filters.items():
        if name not in df.columns:
            raise KeyError(f"unknown document variable '{name}'")
        mask &= df[name].isin(_as_list(value))
    if start is not None or end is not None:
        if 'date' not in df.columns:
            raise KeyError("corpus has no 'date' variable")
        if start is not None:
            mask &= df['date'] >= pd.Timestamp(start)
        if end is not None:
            mask &= df['date'] <= pd.Timestamp(end)
    sub = df[mask].reset_index(drop=True)
    logger.info("subset kept %d of %d documents", len(sub), len(df))
    return Corpus(texts=sub)
