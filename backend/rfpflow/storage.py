# storage.py
# JSON file storage: one file per table, integer ids, one lock per store.
# Each call below is a single atomic read-modify-write; nothing spans calls.

import json
import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from .errors import DuplicateVendorEmail, InvalidRecord
from .models import RFP, Proposal, RFPCreate, Vendor, VendorCreate

logger = logging.getLogger(__name__)

TABLES = ("rfps", "vendors", "proposals", "outbox")

DEMO_VENDORS = [
    {"name": "Acme Corp", "email": "contact@acme.com", "description": "General IT services"},
    {"name": "TechSolutions", "email": "sales@techsolutions.com", "description": "Specialized AI dev"},
    {"name": "Global Systems", "email": "info@globalsystems.com", "description": "Enterprise software"},
]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Storage:
    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.files = {key: self.data_dir / f"{key}.json" for key in TABLES}
        for f in self.files.values():
            if not f.exists():
                f.write_text("[]")
        self._lock = threading.RLock()

    def read_json(self, key: str) -> List[Dict[str, Any]]:
        p = self.files[key]
        try:
            return json.loads(p.read_text())
        except FileNotFoundError:
            return []

    def write_json(self, key: str, obj: Any):
        p = self.files[key]
        tmp = p.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(obj, indent=2, default=str))
        os.replace(tmp, p)

    # --- row helpers ---

    def _get(self, key: str, row_id: int) -> Optional[Dict[str, Any]]:
        return next((x for x in self.read_json(key) if x["id"] == row_id), None)

    def _insert(self, key: str, values: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            rows = self.read_json(key)
            row = {"id": max((x["id"] for x in rows), default=0) + 1, **values, "created_at": _now()}
            rows.append(row)
            self.write_json(key, rows)
            return row

    def _update(self, key: str, row_id: int, changes: Dict[str, Any],
                model: Type[BaseModel]) -> Optional[Dict[str, Any]]:
        with self._lock:
            rows = self.read_json(key)
            row = next((x for x in rows if x["id"] == row_id), None)
            if row is None:
                return None
            merged = {**row, **changes}
            # The merged row must still load, or every later read of the table fails.
            try:
                model(**merged)
            except ValidationError as exc:
                logger.warning("Rejected update to %s %d: %s", key, row_id, exc.errors()[0]["msg"])
                raise InvalidRecord()
            row.update(changes)
            self.write_json(key, rows)
            return row

    def _delete(self, key: str, row_id: int) -> bool:
        with self._lock:
            rows = self.read_json(key)
            kept = [x for x in rows if x["id"] != row_id]
            if len(kept) == len(rows):
                return False
            self.write_json(key, kept)
            return True

    # --- vendors ---

    def list_vendors(self) -> List[Vendor]:
        return [Vendor(**v) for v in self.read_json("vendors")]

    def get_vendor(self, vendor_id: int) -> Optional[Vendor]:
        row = self._get("vendors", vendor_id)
        return Vendor(**row) if row else None

    def get_vendor_by_email(self, email: str) -> Optional[Vendor]:
        # exact match; no case folding or trimming
        row = next((v for v in self.read_json("vendors") if v["email"] == email), None)
        return Vendor(**row) if row else None

    def _check_email_free(self, email: str, vendor_id: Optional[int] = None):
        # email is the unique contact key; compared exactly, like get_vendor_by_email
        for v in self.read_json("vendors"):
            if v["email"] == email and v["id"] != vendor_id:
                raise DuplicateVendorEmail()

    def create_vendor(self, vendor: VendorCreate) -> Vendor:
        with self._lock:
            self._check_email_free(vendor.email)
            return Vendor(**self._insert("vendors", vendor.model_dump(mode="json")))

    def update_vendor(self, vendor_id: int, changes: Dict[str, Any]) -> Optional[Vendor]:
        with self._lock:
            if self._get("vendors", vendor_id) is None:
                return None
            if changes.get("email") is not None:
                self._check_email_free(changes["email"], vendor_id)
            row = self._update("vendors", vendor_id, changes, Vendor)
        return Vendor(**row) if row else None

    def delete_vendor(self, vendor_id: int) -> bool:
        return self._delete("vendors", vendor_id)

    def seed_demo_vendors(self) -> int:
        with self._lock:
            if self.read_json("vendors"):
                return 0
            for v in DEMO_VENDORS:
                self._insert("vendors", dict(v))
        logger.info("Seeded %d demo vendors", len(DEMO_VENDORS))
        return len(DEMO_VENDORS)

    # --- RFPs ---

    def list_rfps(self) -> List[RFP]:
        rfps = [RFP(**r) for r in self.read_json("rfps")]
        return sorted(rfps, key=lambda r: (r.created_at, r.id), reverse=True)

    def get_rfp(self, rfp_id: int) -> Optional[RFP]:
        row = self._get("rfps", rfp_id)
        return RFP(**row) if row else None

    def create_rfp(self, rfp: RFPCreate) -> RFP:
        return RFP(**self._insert("rfps", rfp.model_dump(mode="json")))

    def update_rfp(self, rfp_id: int, changes: Dict[str, Any]) -> Optional[RFP]:
        row = self._update("rfps", rfp_id, changes, RFP)
        return RFP(**row) if row else None

    # --- proposals ---

    def list_proposals(self, rfp_id: int) -> List[Proposal]:
        return [Proposal(**p) for p in self.read_json("proposals") if p["rfp_id"] == rfp_id]

    def create_proposal(self, rfp_id: int, vendor_id: int, raw_response: str,
                        structured_response: Any = None, score: Optional[int] = None,
                        ai_analysis: Optional[str] = None) -> Proposal:
        row = self._insert("proposals", {
            "rfp_id": rfp_id,
            "vendor_id": vendor_id,
            "raw_response": raw_response,
            "structured_response": structured_response,
            "score": score,
            "ai_analysis": ai_analysis,
        })
        return Proposal(**row)

    # --- outbox (simulated email) ---

    def append_outbox(self, message: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("outbox", message)

    def list_outbox(self) -> List[Dict[str, Any]]:
        return self.read_json("outbox")
