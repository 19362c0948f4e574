# recommendation.py
# Folds every proposal for an RFP into one model-chosen recommendation.

import logging
from typing import List

from .ai_helpers import AIService
from .errors import NoProposals, RfpNotFound
from .models import Parsed, Proposal, Recommendation, read_findings
from .storage import Storage

logger = logging.getLogger(__name__)

UNKNOWN_VENDOR = "Unknown Vendor"


def summarize(vendor_name: str, proposal: Proposal) -> str:
    findings = read_findings(proposal.structured_response)
    strengths, gaps = [], []
    if isinstance(findings, Parsed):
        strengths, gaps = findings.value.strengths, findings.value.gaps
    score = proposal.score if proposal.score is not None else 0
    return (f"{vendor_name}: Score {score}/100, "
            f"Strengths: {', '.join(strengths)}, Gaps: {', '.join(gaps)}")


class RecommendationAggregator:
    """No local ranking: the model picks the vendor, and its answer is returned as is."""

    def __init__(self, storage: Storage, ai: AIService):
        self.storage = storage
        self.ai = ai

    def summaries(self, proposals: List[Proposal]) -> List[str]:
        lines = []
        for p in proposals:
            vendor = self.storage.get_vendor(p.vendor_id)
            lines.append(summarize(vendor.name if vendor else UNKNOWN_VENDOR, p))
        return lines

    def recommend(self, rfp_id: int) -> Recommendation:
        rfp = self.storage.get_rfp(rfp_id)
        if rfp is None:
            raise RfpNotFound()
        proposals = self.storage.list_proposals(rfp_id)
        if not proposals:
            raise NoProposals()
        logger.info("Requesting recommendation for RFP %d across %d proposals", rfp_id, len(proposals))
        return self.ai.recommend(rfp.title, rfp.structured_requirements, self.summaries(proposals))
