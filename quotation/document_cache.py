"""
Document Cache: rendered quote PDFs keyed by quote id + content checksum.

A cached document is served only while the quote's checksum still matches and
the entry is younger than the TTL. At most max_entries documents are kept;
the oldest is evicted first.

Storage is pluggable (memory, JSON file, SQL table). A broken storage never
breaks a request: the error is logged and the document is rendered fresh.
"""

import base64
import hashlib
import json
import logging
import os
import tempfile
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from . import models
from .schemas import CachedDocument, CacheStats, Quote, RenderedDocument

logger = logging.getLogger(__name__)

CHECKSUM_VERSION = "v1"
DEFAULT_MAX_ENTRIES = 50
DEFAULT_TTL = timedelta(hours=24)


class CacheStorageError(Exception):
    """Storage backend failed to read or write a cached document."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def quote_checksum(quote: Quote) -> str:
    """
    Fingerprint of the quote fields that change the rendered document.
    Prefixed with a version so a new recipe never matches old entries.
    """
    payload = {
        "id": quote.id,
        "total_amount": quote.total_amount,
        "items": [{"id": item.id, "amount": item.total_price} for item in quote.items],
        "customer": quote.customer.email,
        "created_at": _as_utc(quote.created_at).isoformat(),
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return f"{CHECKSUM_VERSION}:{digest[:16]}"


def default_filename(quote: Quote) -> str:
    return f"{quote.number}.pdf"


# --- Storage backends ---

class CacheStorage:
    """One document per quote id. Implementations raise CacheStorageError."""

    def get(self, quote_id: str) -> Optional[CachedDocument]:
        raise NotImplementedError

    def put(self, document: CachedDocument) -> None:
        raise NotImplementedError

    def delete(self, quote_id: str) -> bool:
        raise NotImplementedError

    def entries(self) -> List[CachedDocument]:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class InMemoryCacheStorage(CacheStorage):

    def __init__(self):
        self._documents: Dict[str, CachedDocument] = {}

    def get(self, quote_id):
        return self._documents.get(quote_id)

    def put(self, document):
        self._documents[document.quote_id] = document

    def delete(self, quote_id):
        return self._documents.pop(quote_id, None) is not None

    def entries(self):
        return list(self._documents.values())

    def clear(self):
        self._documents.clear()


class JsonFileCacheStorage(CacheStorage):
    """
    All entries in one JSON file, PDF bytes base64-encoded.
    Writes go to a temp file that then replaces the cache file, so a crash mid-write
    leaves the previous file intact.
    """

    def __init__(self, path: str):
        self.path = path

    def _read(self) -> Dict[str, CachedDocument]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            return {
                quote_id: CachedDocument(
                    quote_id=quote_id,
                    quote_number=entry["quote_number"],
                    checksum=entry["checksum"],
                    content=base64.b64decode(entry["content"]),
                    filename=entry["filename"],
                    created_at=_as_utc(datetime.fromisoformat(entry["created_at"])),
                    size_bytes=entry["size_bytes"],
                )
                for quote_id, entry in raw.get("entries", {}).items()
            }
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise CacheStorageError(f"Cannot read cache file {self.path}: {e}") from e

    def _write(self, documents: Dict[str, CachedDocument]) -> None:
        raw = {
            "entries": {
                quote_id: {
                    "quote_number": doc.quote_number,
                    "checksum": doc.checksum,
                    "content": base64.b64encode(doc.content).decode("ascii"),
                    "filename": doc.filename,
                    "created_at": doc.created_at.isoformat(),
                    "size_bytes": doc.size_bytes,
                }
                for quote_id, doc in documents.items()
            }
        }
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(raw, f)
                os.replace(tmp_path, self.path)
            except OSError:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            raise CacheStorageError(f"Cannot write cache file {self.path}: {e}") from e

    def get(self, quote_id):
        return self._read().get(quote_id)

    def put(self, document):
        documents = self._read()
        documents[document.quote_id] = document
        self._write(documents)

    def delete(self, quote_id):
        documents = self._read()
        if documents.pop(quote_id, None) is None:
            return False
        self._write(documents)
        return True

    def entries(self):
        return list(self._read().values())

    def clear(self):
        self._write({})


class SqlCacheStorage(CacheStorage):
    """Rows in the cached_documents table, one session per operation."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    @staticmethod
    def _to_document(record: models.CachedDocumentRecord) -> CachedDocument:
        return CachedDocument(
            quote_id=record.quote_id,
            quote_number=record.quote_number,
            checksum=record.checksum,
            content=record.content,
            filename=record.filename,
            # SQLite drops the offset on the way back
            created_at=_as_utc(record.created_at),
            size_bytes=record.size_bytes,
        )

    def get(self, quote_id):
        db = self.session_factory()
        try:
            record = db.get(models.CachedDocumentRecord, quote_id)
            return self._to_document(record) if record else None
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Cannot load cached document {quote_id}: {e}") from e
        finally:
            db.close()

    def put(self, document):
        db = self.session_factory()
        try:
            db.merge(models.CachedDocumentRecord(
                quote_id=document.quote_id,
                quote_number=document.quote_number,
                checksum=document.checksum,
                filename=document.filename,
                content=document.content,
                size_bytes=document.size_bytes,
                created_at=document.created_at,
            ))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise CacheStorageError(f"Cannot store cached document {document.quote_id}: {e}") from e
        finally:
            db.close()

    def delete(self, quote_id):
        db = self.session_factory()
        try:
            deleted = db.query(models.CachedDocumentRecord).filter(
                models.CachedDocumentRecord.quote_id == quote_id
            ).delete()
            db.commit()
            return deleted > 0
        except SQLAlchemyError as e:
            db.rollback()
            raise CacheStorageError(f"Cannot delete cached document {quote_id}: {e}") from e
        finally:
            db.close()

    def entries(self):
        db = self.session_factory()
        try:
            records = db.query(models.CachedDocumentRecord).all()
            return [self._to_document(r) for r in records]
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Cannot list cached documents: {e}") from e
        finally:
            db.close()

    def clear(self):
        db = self.session_factory()
        try:
            db.query(models.CachedDocumentRecord).delete()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise CacheStorageError(f"Cannot clear cached documents: {e}") from e
        finally:
            db.close()


# --- Cache ---

class DocumentCache:

    def __init__(
        self,
        storage: CacheStorage,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = _utcnow,
        filename_for: Callable[[Quote], str] = default_filename,
        timer: Callable[[], float] = time.perf_counter,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.storage = storage
        self.max_entries = max_entries
        self.ttl = ttl
        self.clock = clock
        self.filename_for = filename_for
        self.timer = timer
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._render_failures = 0
        self._renders = 0
        self._render_seconds = 0.0

    def _is_expired(self, document: CachedDocument, now: datetime) -> bool:
        return now - _as_utc(document.created_at) > self.ttl

    def _lookup_locked(self, quote: Quote, checksum: str) -> Optional[CachedDocument]:
        document = self.storage.get(quote.id)
        if document is None:
            return None
        if document.checksum != checksum:
            # Another version of this quote; the miss path replaces it
            logger.debug(f"PDF for {quote.number} is for another version ({document.checksum} != {checksum})")
            return None
        if self._is_expired(document, _as_utc(self.clock())):
            logger.debug(f"Expired PDF for {quote.number}, evicting")
            self.storage.delete(quote.id)
            return None
        return document

    def _store_locked(self, document: CachedDocument) -> None:
        existing = self.storage.get(document.quote_id)
        if existing is not None:
            if _as_utc(existing.created_at) > document.created_at:
                # A later render already landed; keep it
                return
            self.storage.put(document)
            return

        entries = sorted(self.storage.entries(), key=lambda d: _as_utc(d.created_at))
        overflow = len(entries) - self.max_entries + 1
        if overflow > 0:
            evicted = entries[:overflow]
            if _as_utc(evicted[-1].created_at) > document.created_at:
                logger.debug(f"Cache full of newer PDFs, not storing {document.quote_number}")
                return
            for old in evicted:
                logger.debug(f"Cache full, evicting PDF for {old.quote_number}")
                self.storage.delete(old.quote_id)
        self.storage.put(document)

    def lookup(self, quote: Quote) -> Optional[CachedDocument]:
        """Cached document for this exact quote version, or None."""
        checksum = quote_checksum(quote)
        try:
            with self._lock:
                return self._lookup_locked(quote, checksum)
        except CacheStorageError as e:
            logger.warning(f"PDF cache lookup failed, treating as miss: {e}")
            return None

    def get_or_render(self, quote: Quote, render_fn: Callable[[Quote], bytes]) -> RenderedDocument:
        """
        Serve the cached PDF for this quote or render, store and return a new one.
        Exceptions from render_fn propagate unchanged and nothing is cached.
        """
        checksum = quote_checksum(quote)

        cached = self.lookup(quote)
        if cached is not None:
            with self._lock:
                self._hits += 1
            logger.debug(f"PDF cache hit for {quote.number}")
            return RenderedDocument(
                content=cached.content, filename=cached.filename,
                checksum=checksum, cache_hit=True,
            )

        with self._lock:
            self._misses += 1

        started = self.timer()
        try:
            content = bytes(render_fn(quote))
        except Exception:
            with self._lock:
                self._render_failures += 1
            raise
        elapsed = self.timer() - started
        with self._lock:
            self._renders += 1
            self._render_seconds += elapsed

        document = CachedDocument(
            quote_id=quote.id,
            quote_number=quote.number,
            checksum=checksum,
            content=content,
            filename=self.filename_for(quote),
            created_at=_as_utc(self.clock()),
            size_bytes=len(content),
        )
        try:
            with self._lock:
                self._store_locked(document)
        except CacheStorageError as e:
            logger.warning(f"PDF cache write failed for {quote.number}: {e}")

        logger.info(f"Rendered PDF for {quote.number} ({len(content)} bytes)")
        return RenderedDocument(
            content=content, filename=document.filename,
            checksum=checksum, cache_hit=False,
        )

    def invalidate(self, quote_id: str) -> bool:
        try:
            with self._lock:
                return self.storage.delete(quote_id)
        except CacheStorageError as e:
            logger.warning(f"PDF cache invalidate failed for {quote_id}: {e}")
            return False

    def clear(self) -> None:
        try:
            with self._lock:
                self.storage.clear()
        except CacheStorageError as e:
            logger.warning(f"PDF cache clear failed: {e}")

    def stats(self) -> CacheStats:
        try:
            with self._lock:
                entries = self.storage.entries()
        except CacheStorageError as e:
            logger.warning(f"PDF cache stats unavailable: {e}")
            entries = []
        dates = [_as_utc(d.created_at) for d in entries]
        requests = self._hits + self._misses
        average_render_ms = None
        if self._renders:
            average_render_ms = round(self._render_seconds / self._renders * 1000, 3)
        return CacheStats(
            entries=len(entries),
            total_size_bytes=sum(d.size_bytes for d in entries),
            oldest_entry=min(dates) if dates else None,
            newest_entry=max(dates) if dates else None,
            hits=self._hits,
            misses=self._misses,
            render_failures=self._render_failures,
            hit_rate=round(self._hits / requests, 4) if requests else 0.0,
            error_rate=round(self._render_failures / self._misses, 4) if self._misses else 0.0,
            average_render_ms=average_render_ms,
        )

    def preload(self, quotes: Iterable[Quote], render_fn: Callable[[Quote], bytes]) -> int:
        """
        Warm the cache for a batch of quotes. Returns how many were rendered.
        A quote that fails to render is logged and skipped.
        """
        rendered = 0
        for quote in quotes:
            try:
                result = self.get_or_render(quote, render_fn)
            except Exception as e:
                logger.warning(f"Preload skipped {quote.number}: {e}")
                continue
            if not result.cache_hit:
                rendered += 1
        return rendered
