"""
Speiseplan Processing Module
============================

Transport and the service that ties fetching, ingestion and the catalog
together.
"""

from .fetcher import FetchResponse, HttpFetcher
from .service import DetailResult, SpeiseplanService

__all__ = [
    'FetchResponse',
    'HttpFetcher',
    'DetailResult',
    'SpeiseplanService'
]
