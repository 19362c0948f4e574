# intake.py
# Inbound vendor message -> resolved (vendor, rfp) -> analysis -> stored proposal.

import hashlib
import logging
from typing import Optional

from .ai_helpers import AIService
from .config import DuplicatePolicy
from .errors import ResolutionError
from .models import InboundResult, Proposal, ProposalInbound
from .resolver import InboundResolver, Resolution
from .storage import Storage

logger = logging.getLogger(__name__)


def body_hash(body: str) -> str:
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


class ProposalIntake:
    """Runs one inbound message through resolution, analysis and persistence.

    Resolution failures come back as ``InboundResult(success=False)``. Errors
    from the analysis call propagate and nothing is stored. The message is
    not queued or retried in either case.
    """

    def __init__(self, storage: Storage, resolver: InboundResolver, ai: AIService,
                 duplicate_policy: DuplicatePolicy = DuplicatePolicy.ALLOW):
        self.storage = storage
        self.resolver = resolver
        self.ai = ai
        self.duplicate_policy = duplicate_policy

    def find_duplicate(self, resolution: Resolution, body: str) -> Optional[Proposal]:
        digest = body_hash(body)
        return next(
            (p for p in self.storage.list_proposals(resolution.rfp.id)
             if p.vendor_id == resolution.vendor.id and body_hash(p.raw_response) == digest),
            None,
        )

    def process(self, message: ProposalInbound) -> InboundResult:
        try:
            resolution = self.resolver.resolve(message.sender, message.subject, message.body)
        except ResolutionError as exc:
            return InboundResult(success=False, message=exc.message)

        if self.duplicate_policy is DuplicatePolicy.DEDUPE:
            existing = self.find_duplicate(resolution, message.body)
            if existing is not None:
                logger.info("Duplicate proposal from vendor %d for RFP %d; keeping proposal %d",
                            resolution.vendor.id, resolution.rfp.id, existing.id)
                return InboundResult(success=True, proposal_id=existing.id, duplicate=True)

        return InboundResult(success=True, proposal_id=self.ingest(resolution, message.body).id)

    def ingest(self, resolution: Resolution, body: str) -> Proposal:
        vendor, rfp = resolution
        analysis = self.ai.analyze_proposal(rfp.structured_requirements, body)
        proposal = self.storage.create_proposal(
            rfp_id=rfp.id,
            vendor_id=vendor.id,
            raw_response=body,
            structured_response=analysis.structured_response,
            score=analysis.score,
            ai_analysis=analysis.analysis,
        )
        logger.info("Stored proposal %d for RFP %d from vendor %s (score %s)",
                    proposal.id, rfp.id, vendor.email, proposal.score)
        return proposal
