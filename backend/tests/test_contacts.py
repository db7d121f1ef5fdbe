from apps.crawler.contacts import (
    extract_contacts,
    extract_emails,
    extract_phones,
    is_valid_email,
    is_valid_phone,
)


class TestExtractContacts:
    def test_mailto_and_tel_links_win(self):
        html = """
        <html><body>
          <p>Write to sales@acme.co or call 555-987-6543</p>
          <a href="mailto:hello@acme.co?subject=Hi">Email us</a>
          <a href="tel:+1-555-123-4567">Call</a>
        </body></html>
        """
        contacts = extract_contacts(html)
        assert contacts.email == "hello@acme.co"
        assert contacts.phone == "+15551234567"
        assert contacts.found is True

    def test_noreply_addresses_are_rejected(self):
        html = "<body><p>Questions? noreply@acme.co or no-reply@acme.co</p></body>"
        contacts = extract_contacts(html)
        assert contacts.email is None
        assert contacts.found is False

    def test_body_text_fallback(self):
        html = "<body><footer>Reach us at team@acme.co. Call 555-123-4567 today.</footer></body>"
        contacts = extract_contacts(html)
        assert contacts.email == "team@acme.co"
        assert contacts.phone == "555-123-4567"

    def test_empty_page(self):
        contacts = extract_contacts("")
        assert contacts.to_dict() == {"email": None, "phone": None}


class TestValidators:
    def test_placeholder_and_asset_emails(self):
        assert is_valid_email("owner@acme.co")
        assert not is_valid_email("john@example.com")
        assert not is_valid_email("your@email.com")
        assert not is_valid_email("logo@2x.png")

    def test_phone_digit_bounds(self):
        assert is_valid_phone("(555) 123-4567")
        assert not is_valid_phone("1234-5678")
        assert not is_valid_phone("1" * 16)

    def test_emails_are_unique_case_insensitively(self):
        assert extract_emails("Info@Acme.co and info@acme.co") == ["Info@Acme.co"]

    def test_short_numbers_are_not_phones(self):
        assert extract_phones("Suite 1200, open 9-5") == []
