# resolver.py
# Maps an inbound vendor message to a stored (Vendor, RFP) pair.

import logging
from typing import NamedTuple, Optional

from .correlation import CorrelationStrategy, SubjectRfpReference
from .errors import RfpIdNotParsed, RfpNotFound, UnknownVendor
from .models import RFP, Vendor
from .storage import Storage

logger = logging.getLogger(__name__)


class Resolution(NamedTuple):
    vendor: Vendor
    rfp: RFP


class InboundResolver:
    def __init__(self, storage: Storage, strategy: Optional[CorrelationStrategy] = None):
        self.storage = storage
        self.strategy = strategy or SubjectRfpReference()

    def resolve_vendor(self, sender: str) -> Vendor:
        vendor = self.storage.get_vendor_by_email(sender)
        if vendor is None:
            logger.warning("Unknown vendor email: %s", sender)
            raise UnknownVendor()
        return vendor

    def resolve_rfp(self, subject: str, body: str = "") -> RFP:
        rfp_id = self.strategy.extract_rfp_id(subject, body)
        if rfp_id is None:
            logger.warning("Could not parse RFP ID from subject: %s", subject)
            raise RfpIdNotParsed()
        rfp = self.storage.get_rfp(rfp_id)
        if rfp is None:
            logger.warning("Subject references unknown RFP %d", rfp_id)
            raise RfpNotFound()
        return rfp

    def resolve(self, sender: str, subject: str, body: str = "") -> Resolution:
        """Return the (vendor, rfp) pair or raise a ResolutionError.

        The vendor is checked first, so an unknown sender is reported even
        when the subject is also unusable.
        """
        vendor = self.resolve_vendor(sender)
        rfp = self.resolve_rfp(subject, body)
        return Resolution(vendor, rfp)
