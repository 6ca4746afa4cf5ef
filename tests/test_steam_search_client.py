import json
import unittest
from collections.abc import Callable
from pathlib import Path

import httpx

from find_steam_ids import (
    DecodeError,
    HttpStatusError,
    NetworkError,
    NoMatchError,
    ResolutionError,
    SteamSearchClient,
)

FIXTURE_PATH: Path = Path(__file__).parent / 'test_data' / 'storesearch_portal.json'


def make_client(handler: Callable[[httpx.Request], httpx.Response]) -> SteamSearchClient:
    return SteamSearchClient(httpx.Client(transport=httpx.MockTransport(handler)))


class TestSteamSearchClient(unittest.TestCase):
    """
    Tests SteamSearchClient.resolve() against canned api responses.
    """

    def test_top_result_from_fixture(self) -> None:
        """
        Loads the fixture search response and checks that the first item's id wins.
        """
        with FIXTURE_PATH.open('r', encoding='utf-8') as fh:
            payload: dict[str, object] = json.load(fh)
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=payload)

        computed: int = make_client(handler).resolve('Portal')
        self.assertEqual(computed, 400)
        self.assertEqual(len(seen), 1)

    def test_request_params(self) -> None:
        """
        Checks the endpoint and the term/language/country query params.
        """
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={'items': [{'id': 292030, 'name': 'The Witcher 3: Wild Hunt'}]})

        make_client(handler).resolve('The Witcher 3: Wild Hunt')
        url: httpx.URL = seen[0].url
        self.assertEqual(f'{url.scheme}://{url.host}{url.path}', 'https://store.steampowered.com/api/storesearch/')
        computed: dict[str, str] = dict(url.params)
        expected: dict[str, str] = {'term': 'The Witcher 3: Wild Hunt', 'l': 'english', 'cc': 'US'}
        self.assertEqual(computed, expected)

    def test_empty_items_is_no_match(self) -> None:
        client: SteamSearchClient = make_client(lambda request: httpx.Response(200, json={'total': 0, 'items': []}))
        with self.assertRaises(NoMatchError):
            client.resolve('Nonexistent Game XYZ123')

    def test_non_200_status(self) -> None:
        """
        Checks that the status code is kept on the error and in its message.
        """
        client: SteamSearchClient = make_client(lambda request: httpx.Response(503, text='busy'))
        with self.assertRaises(HttpStatusError) as ctx:
            client.resolve('Portal')
        self.assertEqual(ctx.exception.status_code, 503)
        self.assertEqual(str(ctx.exception), 'HTTP error: 503')

    def test_unparseable_bodies(self) -> None:
        """
        Checks that bad json, a missing items list, and a bad top id are all decode errors.
        """
        bodies: list[bytes] = [
            b'<html>not json</html>',
            b'{"total": 1}',
            b'[1, 2, 3]',
            b'{"items": [{"name": "Portal"}]}',
            b'{"items": [{"id": "400", "name": "Portal"}]}',
            b'{"items": [{"id": true, "name": "Portal"}]}',
        ]
        for body in bodies:
            with self.subTest(body=body):
                client: SteamSearchClient = make_client(lambda request, body=body: httpx.Response(200, content=body))
                with self.assertRaises(DecodeError):
                    client.resolve('Portal')

    def test_corrupt_gzip_body_is_decode_error(self) -> None:
        """
        Checks that a body httpx can't decompress becomes DecodeError.
        """
        client: SteamSearchClient = make_client(
            lambda request: httpx.Response(200, headers={'content-encoding': 'gzip'}, content=b'not gzip at all')
        )
        with self.assertRaises(DecodeError):
            client.resolve('Portal')

    def test_transport_failures_are_network_errors(self) -> None:
        """
        Checks that connect failures and timeouts both become NetworkError.
        """
        errors: list[type[httpx.TransportError]] = [httpx.ConnectError, httpx.ReadTimeout, httpx.ConnectTimeout]
        for error_cls in errors:
            with self.subTest(error=error_cls.__name__):

                def handler(request: httpx.Request, error_cls=error_cls) -> httpx.Response:
                    raise error_cls('boom', request=request)

                with self.assertRaises(NetworkError):
                    make_client(handler).resolve('Portal')

    def test_empty_name_makes_no_request(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={'items': []})

        with self.assertRaises(ResolutionError):
            make_client(handler).resolve('')
        self.assertEqual(seen, [])


if __name__ == '__main__':
    unittest.main()
