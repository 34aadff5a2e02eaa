"""Tests for listing page decoding."""

import pytest

from confluence_client import ConfluenceAuthorizationError, ConfluenceHttpError
from fetchers import ListingWalker
from conftest import BASE_URL, FakeResponse, listing_payload, ref_payload

FIRST_URL = f"{BASE_URL}/rest/api/space/ENG/content?limit=2"


@pytest.fixture
def walker(client):
    return ListingWalker(client)


class TestParseListing:
    """Test both envelope shapes returned by the listing endpoints."""

    def test_nested_page_envelope(self, walker):
        data = listing_payload([ref_payload('1', 'One'), ref_payload('2', 'Two')])

        page = walker.parse_listing(data)

        assert [ref.id for ref in page.refs] == ['1', '2']
        assert [ref.title for ref in page.refs] == ['One', 'Two']
        assert page.cursor.base_url == BASE_URL
        assert page.cursor.context_path == '/wiki'
        assert not page.cursor.has_next

    def test_top_level_envelope(self, walker):
        data = listing_payload([ref_payload('3', 'Three')], nested=False)

        page = walker.parse_listing(data)

        assert [ref.id for ref in page.refs] == ['3']
        assert page.cursor.base_url == BASE_URL

    def test_relative_next_joined_with_base(self, walker):
        data = listing_payload(
            [ref_payload('1', 'One')],
            next_url='/rest/api/space/ENG/content/page?limit=2&start=2'
        )

        page = walker.parse_listing(data)

        assert page.next_url == f"{BASE_URL}/rest/api/space/ENG/content/page?limit=2&start=2"

    def test_absolute_next_kept(self, walker):
        next_url = f"{BASE_URL}/rest/api/space/ENG/content/page?start=2"
        page = walker.parse_listing(listing_payload([], next_url=next_url))
        assert page.next_url == next_url

    def test_links_decoded(self, walker):
        page = walker.parse_listing(listing_payload([ref_payload('7', 'Seven', web_ui='/pages/7')]))

        links = page.refs[0].links
        assert links.web_ui == '/pages/7'
        assert links.tiny_ui == '/x/7'

    def test_results_without_id_ignored(self, walker):
        data = listing_payload([{'title': 'no id'}, ref_payload('1', 'One')])
        assert [ref.id for ref in walker.parse_listing(data).refs] == ['1']

    def test_non_object_results_ignored(self, walker):
        data = listing_payload(['stray', None, 42, ref_payload('1', 'One')])
        assert [ref.id for ref in walker.parse_listing(data).refs] == ['1']

    def test_missing_results(self, walker):
        page = walker.parse_listing({})
        assert page.refs == []
        assert page.cursor.base_url == BASE_URL


class TestFetchListing:
    """Test listing requests and their failures."""

    def test_fetch_listing(self, walker, fake_session):
        fake_session.add_listing(FIRST_URL, [ref_payload('1', 'One')])

        page = walker.fetch_listing(FIRST_URL)

        assert [ref.id for ref in page.refs] == ['1']
        assert fake_session.calls[0][1] == FIRST_URL

    def test_403_propagates_as_authorization_error(self, walker, fake_session):
        fake_session.add(FIRST_URL, FakeResponse(status_code=403))

        with pytest.raises(ConfluenceAuthorizationError):
            walker.fetch_listing(FIRST_URL)

    def test_other_status_propagates(self, walker, fake_session):
        fake_session.add(FIRST_URL, FakeResponse(status_code=502, text='bad gateway'))

        with pytest.raises(ConfluenceHttpError) as exc_info:
            walker.fetch_listing(FIRST_URL)

        assert exc_info.value.status_code == 502
