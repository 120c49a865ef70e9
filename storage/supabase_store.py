from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from core.models import BalanceChange, StoredRecord


log = logging.getLogger(__name__)

DEFAULT_TABLE = "solana_transactions"
SELECT_COLUMNS = "signature,ui_amount,transaction_timestamp,pre_amount,post_amount"


class StoreError(Exception):
    pass


class SupabaseStore:
    """
    Upsert / lookup by signature through Supabase's PostgREST endpoint:
      POST {url}/rest/v1/{table}?on_conflict=signature
      GET  {url}/rest/v1/{table}?signature=eq.{sig}
    """

    def __init__(
        self,
        url: str,
        service_key: str,
        table: str = DEFAULT_TABLE,
        timeout: float = 20.0,
        session: Optional[requests.Session] = None,
    ):
        self.endpoint = f"{url.rstrip('/')}/rest/v1/{table}"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": service_key,
                "Authorization": f"Bearer {service_key}",
                "Content-Type": "application/json",
            }
        )

    def upsert(self, change: BalanceChange) -> StoredRecord:
        record = StoredRecord.from_change(change)
        try:
            r = self.session.post(
                self.endpoint,
                params={"on_conflict": "signature"},
                json=record.to_row(),
                headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise StoreError(f"upsert {change.signature} failed: {e}") from e
        if r.status_code >= 400:
            raise StoreError(f"upsert {change.signature} failed: {r.status_code} {_error_text(r)}")
        return record

    def get(self, signature: str) -> Optional[StoredRecord]:
        try:
            r = self.session.get(
                self.endpoint,
                params={"signature": f"eq.{signature}", "select": SELECT_COLUMNS},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise StoreError(f"lookup {signature} failed: {e}") from e
        if r.status_code >= 400:
            raise StoreError(f"lookup {signature} failed: {r.status_code} {_error_text(r)}")

        try:
            rows = r.json() or []
        except ValueError as e:
            raise StoreError(f"lookup {signature} returned a non-JSON body") from e
        if not rows:
            return None
        return StoredRecord.from_row(rows[0])


class UnconfiguredStore:
    """Stands in when credentials are missing; every call fails with the reason."""

    def __init__(self, reason: str):
        self.reason = reason

    def upsert(self, change: BalanceChange) -> StoredRecord:
        raise StoreError(f"Supabase client not initialized: {self.reason}")

    def get(self, signature: str) -> Optional[StoredRecord]:
        raise StoreError(f"Supabase client not initialized: {self.reason}")


def build_store(url: str, service_key: str, timeout: float = 20.0):
    missing = []
    if not url:
        missing.append("Supabase URL (LOCAL_SUPABASE_URL or SUPABASE_URL)")
    if not service_key:
        missing.append("service role key (LOCAL_SUPABASE_SERVICE_ROLE_KEY or SUPABASE_SERVICE_ROLE_KEY)")
    if missing:
        reason = "missing " + " and ".join(missing)
        log.error("Supabase store unavailable: %s", reason)
        return UnconfiguredStore(reason)

    log.info("Supabase store initialized for %s", url)
    return SupabaseStore(url, service_key, timeout=timeout)


def _error_text(r: requests.Response) -> str:
    try:
        data: Dict[str, Any] = r.json()
    except ValueError:
        return (r.text or "")[:300]
    if isinstance(data, dict):
        return str(data.get("message") or data)
    return str(data)
