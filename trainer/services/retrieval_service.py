"""
Retrieval Service: semantic lookup of SOP passages.

Scoring and feedback use retrieved passages only as optional context, so
`retrieve_or_empty()` turns any retrieval failure or timeout into an empty
result. Retrieval runs in a worker thread so a slow vector store never
blocks the event loop.
"""

import asyncio
import json
import logging
import os
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from langchain_chroma import Chroma
from langchain_huggingface import HuggingFaceEmbeddings
from pydantic import BaseModel, Field

from trainer.exceptions import RetrievalError

logger = logging.getLogger("trainer.retrieval")


class RetrievedPassage(BaseModel):
    """A ranked passage returned by retrieval."""

    content: str
    source: str = "sop"
    score: float = 0.0
    metadata: Dict[str, Any] = Field(default_factory=dict)


class RetrievalService(ABC):
    """Abstract retrieval capability: query in, ranked passages out."""

    timeout_seconds: float = 5.0

    @abstractmethod
    def retrieve(
        self,
        query: str,
        filters: Optional[Dict[str, Any]] = None,
        limit: int = 3,
    ) -> List[RetrievedPassage]:
        ...

    async def retrieve_or_empty(
        self,
        query: str,
        filters: Optional[Dict[str, Any]] = None,
        limit: int = 3,
    ) -> List[RetrievedPassage]:
        start_time = time.time()
        try:
            loop = asyncio.get_running_loop()
            return await asyncio.wait_for(
                loop.run_in_executor(
                    None,
                    lambda: self.retrieve(query, filters=filters, limit=limit),
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(json.dumps({
                "step": "RETRIEVAL",
                "status": "timeout",
                "timeout_seconds": self.timeout_seconds,
                "duration_ms": int((time.time() - start_time) * 1000),
            }))
            return []
        except Exception as e:
            logger.warning(json.dumps({
                "step": "RETRIEVAL",
                "status": "failed",
                "error_type": type(e).__name__,
                "error": str(e),
                "duration_ms": int((time.time() - start_time) * 1000),
            }))
            return []


class NullRetrievalService(RetrievalService):
    """Retrieval that never finds anything."""

    def retrieve(self, query, filters=None, limit=3):
        return []


def chroma_filter(filters: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Chroma takes a single key as-is; several keys must be wrapped in $and."""
    if not filters:
        return None
    if len(filters) == 1:
        return dict(filters)
    return {"$and": [{key: value} for key, value in filters.items()]}


class ChromaRetrievalService(RetrievalService):
    """
    SOP passages from a persisted Chroma collection.

    The collection is built by an external ingestion job; this service only
    reads it. Embeddings and the store load lazily on the first query.
    """

    def __init__(
        self,
        persist_directory: str,
        collection_name: str = "sop_passages",
        embedding_model: str = "all-MiniLM-L6-v2",
        timeout_seconds: float = 5.0,
    ):
        self.persist_directory = persist_directory
        self.collection_name = collection_name
        self.embedding_model = embedding_model
        self.timeout_seconds = timeout_seconds
        self._vectorstore: Optional[Chroma] = None

    def _get_vectorstore(self) -> Chroma:
        if self._vectorstore is None:
            if not os.path.isdir(self.persist_directory):
                raise RetrievalError(
                    self.collection_name,
                    f"SOP store not found at {self.persist_directory}",
                )
            embeddings = HuggingFaceEmbeddings(
                model_name=self.embedding_model,
                model_kwargs={"device": "cpu"},
                encode_kwargs={"normalize_embeddings": True},
            )
            self._vectorstore = Chroma(
                collection_name=self.collection_name,
                embedding_function=embeddings,
                persist_directory=self.persist_directory,
            )
            logger.info(
                f"SOP store loaded: {self.persist_directory} collection={self.collection_name}"
            )
        return self._vectorstore

    def retrieve(self, query, filters=None, limit=3):
        if not query or not query.strip():
            raise RetrievalError(query or "", "empty query")

        results = self._get_vectorstore().similarity_search_with_relevance_scores(
            query, k=limit, filter=chroma_filter(filters)
        )
        return [
            RetrievedPassage(
                content=document.page_content,
                source=document.metadata.get("source", "sop"),
                score=round(float(score), 3),
                metadata=dict(document.metadata),
            )
            for document, score in results
        ]
