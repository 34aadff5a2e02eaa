"""Shared fixtures: an in-memory stand-in for the Confluence REST API."""

import json

import pytest

from confluence_client import ConfluenceClient

BASE_URL = 'https://x.atlassian.net/wiki'


class FakeResponse:
    """Just enough of ``requests.Response`` for the client."""

    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self._text = text

    @property
    def text(self):
        if self._text is not None:
            return self._text
        return json.dumps(self._payload) if self._payload is not None else ''

    def json(self):
        if self._text is not None:
            return json.loads(self._text)
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Routes requests by URL and records every call made."""

    def __init__(self):
        self.headers = {}
        self.auth = None
        self.verify = True
        self.routes = {}
        self.calls = []

    def mount(self, prefix, adapter):
        pass

    def add(self, url, response):
        self.routes[url] = response

    def add_listing(self, url, results, next_url='', nested=True):
        self.add(url, FakeResponse(payload=listing_payload(results, next_url, nested)))

    def add_document(self, document_id, storage, inline=None, cells=None):
        self.add(
            f"{BASE_URL}/rest/api/content/{document_id}",
            FakeResponse(payload=content_payload(storage, inline, cells))
        )

    def request(self, method, url, timeout=None, params=None, **kwargs):
        self.calls.append((method, url, params))
        response = self.routes.get(url)
        if response is None:
            return FakeResponse(status_code=404, text='not found')
        if isinstance(response, Exception):
            raise response
        return response

    def document_calls(self, document_id):
        url = f"{BASE_URL}/rest/api/content/{document_id}"
        return [call for call in self.calls if call[1] == url]


def ref_payload(document_id, title, web_ui=None):
    return {
        'id': document_id,
        'type': 'page',
        'status': 'current',
        'title': title,
        '_links': {
            'self': f"{BASE_URL}/rest/api/content/{document_id}",
            'tinyui': f"/x/{document_id}",
            'editui': f"/pages/resumedraft.action?draftId={document_id}",
            'webui': web_ui if web_ui is not None else f"/spaces/ENG/pages/{document_id}"
        }
    }


def listing_payload(results, next_url='', nested=True):
    body = {
        'results': results,
        'start': 0,
        'limit': 50,
        'size': len(results),
        '_links': {'self': f"{BASE_URL}/rest/api/space/ENG/content/page"}
    }
    if next_url:
        body['_links']['next'] = next_url

    if not nested:
        body['_links']['base'] = BASE_URL
        body['_links']['context'] = '/wiki'
        return body

    return {
        'page': body,
        '_links': {'base': BASE_URL, 'context': '/wiki'}
    }


def content_payload(storage, inline=None, cells=None):
    data = {
        'id': 'ignored',
        'body': {'storage': {'value': storage, 'representation': 'storage'}},
        'metadata': {'labels': {'results': []}},
        'extensions': {}
    }
    if inline:
        data['metadata']['inlineProperties'] = {
            'extensions': {
                'inlineProperties': [{'body': {'storage': {'value': value}}} for value in inline]
            }
        }
    if cells:
        data['extensions']['tableCells'] = {
            'results': [{'id': str(i), 'type': 'cell', 'body': {'storage': {'value': value}}}
                        for i, value in enumerate(cells)]
        }
    return data


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def client(fake_session):
    return ConfluenceClient(BASE_URL, username='user@example.com', api_token='token', session=fake_session)
