"""Test cases for Namecheap XML token decoding."""

from decimal import Decimal

from app.adapters import namecheap_xml

CHECK_OK = """<?xml version="1.0" encoding="utf-8"?>
<ApiResponse Status="OK" xmlns="http://api.namecheap.com/xml.response">
  <CommandResponse Type="namecheap.domains.check">
    <DomainCheckResult Domain="goldcasino.com" Available="true" IsPremiumName="false" />
  </CommandResponse>
</ApiResponse>"""

PREMIUM_OK = """<ApiResponse Status="OK">
  <DomainCheckResult Domain="vip.bet" IsPremiumName="true" Available="false" />
</ApiResponse>"""


class TestSuccessAndAvailability:
    """Test cases for the status, availability and premium tokens."""

    def test_status_ok_is_success(self):
        """Status="OK" marks a successful response."""
        assert namecheap_xml.is_success(CHECK_OK) is True

    def test_error_status_is_not_success(self):
        """Any other status is a failure."""
        assert namecheap_xml.is_success('<ApiResponse Status="ERROR">') is False

    def test_available_token_matches_exact_domain(self):
        """Availability requires the domain and Available="true" adjacent."""
        assert namecheap_xml.is_available(CHECK_OK, "goldcasino.com") is True
        assert namecheap_xml.is_available(CHECK_OK, "goldcasino.net") is False

    def test_attribute_order_matters(self):
        """Tokens are matched exactly, not parsed as attributes."""
        assert namecheap_xml.is_available(PREMIUM_OK, "vip.bet") is False
        assert namecheap_xml.is_premium(PREMIUM_OK, "vip.bet") is True
        assert namecheap_xml.is_premium(CHECK_OK, "goldcasino.com") is False


class TestExtractors:
    """Test cases for transaction id and price extraction."""

    def test_transaction_id(self):
        """TransactionID digits are returned as a string."""
        xml = '<DomainCreateResult Domain="a.com" Registered="true" TransactionID="98765" />'
        assert namecheap_xml.extract_transaction_id(xml) == "98765"

    def test_transaction_id_missing(self):
        """No TransactionID yields None."""
        assert namecheap_xml.extract_transaction_id(CHECK_OK) is None

    def test_price_is_case_insensitive(self):
        """Name match on the TLD ignores case."""
        xml = '<Product NAME="COM" Duration="1" PRICE="10.28" />'
        assert namecheap_xml.extract_price(xml, "com") == Decimal("10.28")

    def test_price_no_match(self):
        """Missing TLD yields None."""
        xml = '<Product Name="net" Price="11.98" />'
        assert namecheap_xml.extract_price(xml, "com") is None

    def test_price_unparseable(self):
        """A non-numeric price is treated as no price."""
        xml = '<Product Name="com" Price="n/a" />'
        assert namecheap_xml.extract_price(xml, "com") is None


class TestExtractError:
    """Test cases for error message precedence."""

    def test_numbered_error_wins(self):
        """<Error Number="N"> takes precedence over <Message>."""
        xml = (
            '<ApiResponse Status="ERROR"><Errors>'
            '<Error Number="2019166">Domain not available</Error>'
            "</Errors><Message>ignored</Message></ApiResponse>"
        )
        assert namecheap_xml.extract_error(xml) == ("2019166", "Domain not available")

    def test_plain_error(self):
        """An unnumbered <Error> is used next."""
        xml = "<Errors><Error>Invalid request IP</Error></Errors><Message>x</Message>"
        assert namecheap_xml.extract_error(xml) == (None, "Invalid request IP")

    def test_message_fallback(self):
        """<Message> is used when there is no <Error>."""
        xml = "<ApiResponse><Message>Something broke</Message></ApiResponse>"
        assert namecheap_xml.extract_error(xml) == (None, "Something broke")

    def test_unknown_error(self):
        """Nothing recognisable yields the generic message."""
        assert namecheap_xml.extract_error("<ApiResponse />") == (
            None,
            namecheap_xml.UNKNOWN_ERROR,
        )
        assert namecheap_xml.UNKNOWN_ERROR == "Unknown error occurred"
