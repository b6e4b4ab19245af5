from __future__ import annotations


class DocRagError(Exception):
    """Base class for errors surfaced to the caller of the QA pipeline."""


class RetrievalError(DocRagError):
    """The primary-query search failed or did not finish in time."""


class CompletionError(DocRagError):
    """The completion/streaming collaborator failed to produce an answer."""
