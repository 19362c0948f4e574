# errors.py
# Exception hierarchy shared by the pipeline, the aggregator and the API layer.


class RfpFlowError(Exception):
    """Base class for every error raised by rfpflow."""

    message = "Internal error"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class NotFoundError(RfpFlowError):
    message = "Not found"


class VendorNotFound(NotFoundError):
    message = "Vendor not found"


class PreconditionFailed(RfpFlowError):
    message = "Precondition failed"


class NoProposals(PreconditionFailed):
    message = "No proposals received for this RFP"


class DuplicateVendorEmail(PreconditionFailed):
    message = "Vendor email already registered"


class InvalidRecord(PreconditionFailed):
    message = "Update would leave the record invalid"


# Soft failures: the intake pipeline turns these into {success: false}.
class ResolutionError(RfpFlowError):
    message = "Inbound message could not be resolved"


class UnknownVendor(ResolutionError):
    message = "Unknown vendor"


class RfpIdNotParsed(ResolutionError):
    message = "RFP ID not found in subject"


class RfpNotFound(NotFoundError, ResolutionError):
    message = "RFP not found"


class AIServiceError(RfpFlowError):
    message = "AI service failure"


class EmailDispatchError(RfpFlowError):
    message = "Email dispatch failed"


class ConfigError(RfpFlowError):
    message = "Invalid configuration"
