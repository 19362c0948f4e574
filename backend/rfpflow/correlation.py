# correlation.py
# How an inbound message is tied back to the RFP it answers.

import re
from abc import ABC, abstractmethod
from typing import Optional


class CorrelationStrategy(ABC):
    """Extracts the id of the RFP an inbound message replies to."""

    @abstractmethod
    def extract_rfp_id(self, subject: str, body: str) -> Optional[int]:
        """Return the referenced RFP id, or None when the message carries no reference."""

    @abstractmethod
    def reference(self, rfp_id: int) -> str:
        """Token to embed in outbound mail so replies can be correlated."""


class SubjectRfpReference(CorrelationStrategy):
    """Looks for ``RFP #<id>`` (any case) in the subject line.

    Vendors who rewrite the subject break the link; there are no threading
    headers to fall back on.
    """

    pattern = re.compile(r"RFP #(\d+)", re.IGNORECASE)

    def extract_rfp_id(self, subject: str, body: str = "") -> Optional[int]:
        m = self.pattern.search(subject or "")
        return int(m.group(1)) if m else None

    def reference(self, rfp_id: int) -> str:
        return f"RFP #{rfp_id}"
