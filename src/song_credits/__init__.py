__version__ = "0.1.0"

__all__ = (
    "__version__",
    "Config",
    # Data model
    "Category",
    "CategoryMap",
    "CreditEntry",
    "CreditsResult",
    "SourceResult",
    # HTTP
    "ApiClient",
    "ApiError",
    "BlockedHostError",
    "HttpStatusError",
    "JsonDecodeError",
    "Source",
    "TransportError",
    "UnsupportedSourceError",
    # Sources and aggregation
    "MusicBrainzSource",
    "DiscogsSource",
    "WikidataSource",
    "CreditAggregator",
    "fetch_credits",
    # Lookup service
    "CreditsLookup",
    "InvalidQueryError",
    "LookupCache",
    "LookupMetrics",
    "LookupOutcome",
)

from song_credits.aggregator import CreditAggregator, fetch_credits
from song_credits.config import Config
from song_credits.credits import Category, CategoryMap, CreditEntry, CreditsResult, SourceResult
from song_credits.discogs import DiscogsSource
from song_credits.http_client import (
    ApiClient,
    ApiError,
    BlockedHostError,
    HttpStatusError,
    JsonDecodeError,
    Source,
    TransportError,
    UnsupportedSourceError,
)
from song_credits.lookup import CreditsLookup, InvalidQueryError, LookupOutcome
from song_credits.lookup_cache import LookupCache
from song_credits.metrics import LookupMetrics
from song_credits.musicbrainz import MusicBrainzSource
from song_credits.wikidata import WikidataSource
