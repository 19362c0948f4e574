import pytest

from rfpflow.correlation import CorrelationStrategy
from rfpflow.errors import NotFoundError, RfpIdNotParsed, RfpNotFound, UnknownVendor
from rfpflow.resolver import InboundResolver


@pytest.fixture
def resolver(storage):
    return InboundResolver(storage)


class TestVendorResolution:
    def test_exact_email_matches(self, resolver, acme, rfp):
        vendor, resolved = resolver.resolve("sales@acme.com", f"Re: RFP #{rfp.id}", "")
        assert vendor == acme
        assert resolved.id == rfp.id

    @pytest.mark.parametrize("sender", ["Sales@acme.com", "sales@ACME.com", "other@acme.com"])
    def test_any_other_address_is_unknown(self, resolver, acme, rfp, sender):
        with pytest.raises(UnknownVendor) as exc:
            resolver.resolve(sender, f"RFP #{rfp.id}", "")
        assert exc.value.message == "Unknown vendor"

    def test_vendor_checked_before_subject(self, resolver):
        with pytest.raises(UnknownVendor):
            resolver.resolve("nobody@example.com", "Hello", "")


class TestRfpResolution:
    def test_missing_pattern(self, resolver, acme):
        with pytest.raises(RfpIdNotParsed) as exc:
            resolver.resolve("sales@acme.com", "Hello", "")
        assert exc.value.message == "RFP ID not found in subject"

    def test_unknown_rfp_id(self, resolver, acme, rfp):
        with pytest.raises(RfpNotFound) as exc:
            resolver.resolve("sales@acme.com", "Re: RFP #999", "")
        assert exc.value.message == "RFP not found"
        assert isinstance(exc.value, NotFoundError)

    def test_case_insensitive_pattern(self, resolver, acme, rfp):
        assert resolver.resolve("sales@acme.com", f"re: rfp #{rfp.id}", "").rfp.id == rfp.id


def test_pluggable_strategy(storage, acme, rfp):
    class BodyToken(CorrelationStrategy):
        def extract_rfp_id(self, subject, body):
            return int(body.split("ref:")[1].split()[0]) if "ref:" in body else None

        def reference(self, rfp_id):
            return f"ref:{rfp_id}"

    resolver = InboundResolver(storage, BodyToken())
    assert resolver.resolve("sales@acme.com", "Hello", f"ref:{rfp.id} our offer").rfp.id == rfp.id
