"""Public API exports for implant scan decoding and inventory reconciliation."""

from .ai_table import AI_TABLE, AIDefinition, lookup_ai
from .engine import ReconciliationEngine, ScanGate, ScanOutcome
from .errors import DecodeError, MatchError, UndoError, ValidationError
from .expiry import decode_date, expires_soon, format_for_display, is_expired
from .filters import filter_articles, list_sparten
from .gs1 import decode_payload
from .importer import ImportResult, build_articles, detect_schema, dump_backup, load_backup
from .matcher import match_article, resolve_article
from .models import Article, ArticleStatus, DataIssue, ScanHistoryEntry, ScanResult, Statistics
from .reconcile import (
    apply_manual,
    apply_scan,
    classify_status,
    generate_auto_comment,
    recompute,
    scan_advisories,
    set_comment,
    undo_last_scan,
)
from .stats import aggregate
from .stores import ArticleStore, HistoryStore, InMemoryArticleStore, InMemoryHistoryStore

__all__ = [
    "AIDefinition",
    "AI_TABLE",
    "Article",
    "ArticleStatus",
    "ArticleStore",
    "DataIssue",
    "DecodeError",
    "HistoryStore",
    "ImportResult",
    "InMemoryArticleStore",
    "InMemoryHistoryStore",
    "MatchError",
    "ReconciliationEngine",
    "ScanGate",
    "ScanHistoryEntry",
    "ScanOutcome",
    "ScanResult",
    "Statistics",
    "UndoError",
    "ValidationError",
    "aggregate",
    "apply_manual",
    "apply_scan",
    "build_articles",
    "classify_status",
    "decode_date",
    "decode_payload",
    "detect_schema",
    "dump_backup",
    "expires_soon",
    "filter_articles",
    "format_for_display",
    "generate_auto_comment",
    "is_expired",
    "list_sparten",
    "load_backup",
    "lookup_ai",
    "match_article",
    "recompute",
    "resolve_article",
    "scan_advisories",
    "set_comment",
    "undo_last_scan",
]
