"""
Scryfall API client used as the external card database.

This module wraps the three Scryfall endpoints the builder relies on: exact
name lookup, batch lookup by identifier, and full-text search. Calls are made
sequentially on a shared session with light rate limiting; nothing is retried.
"""

import json
import logging
import random
import time
from typing import Any, Dict, List, Optional

import requests

from .models import CardRecord


class ScryfallAPIError(Exception):
    """Raised when Scryfall API calls fail."""
    pass


class ScryfallService:
    """Service for interacting with the Scryfall API."""

    BASE_URL = "https://api.scryfall.com"
    BATCH_SIZE = 75  # /cards/collection accepts at most 75 identifiers

    def __init__(self, timeout: float = 15.0, min_request_interval: float = 0.1,
                 session: Optional[requests.Session] = None):
        """
        Initialize the Scryfall client.

        Args:
            timeout: Per-request timeout in seconds
            min_request_interval: Minimum spacing between requests in seconds
            session: Optional requests session (a new one is created if None)
        """
        self.logger = logging.getLogger(__name__)
        self.timeout = timeout
        self.min_request_interval = min_request_interval
        self.last_request_time = 0.0

        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': 'MTG-Collection-AutoBuilder/1.0.0',
            'Accept': 'application/json',
        })

    def lookup_by_name(self, exact_name: str) -> Optional[CardRecord]:
        """
        Look up a card by its exact name.

        Args:
            exact_name: Exact card name

        Returns:
            CardRecord if found, None if Scryfall has no card with that name

        Raises:
            ScryfallAPIError: On transport errors or unexpected responses
        """
        self.logger.debug(f"Looking up card by exact name: {exact_name}")
        response = self._request('GET', '/cards/named', params={'exact': exact_name})

        if response.status_code == 404:
            self.logger.debug(f"Card not found on Scryfall: {exact_name}")
            return None
        data = self._json_or_raise(response)
        return CardRecord.from_scryfall_data(data)

    def lookup_batch(self, identifiers: List[Dict[str, str]]) -> List[CardRecord]:
        """
        Resolve a list of identifiers to card records.

        Identifiers are dictionaries of the form {'id': ...} or
        {'set': ..., 'collector_number': ...}. Unmatched identifiers are simply
        absent from the result. A failing chunk is logged and skipped.

        Args:
            identifiers: Scryfall card identifiers

        Returns:
            Card records for every identifier Scryfall could resolve
        """
        if not identifiers:
            return []

        records = []
        total_batches = (len(identifiers) + self.BATCH_SIZE - 1) // self.BATCH_SIZE
        for i in range(0, len(identifiers), self.BATCH_SIZE):
            batch = identifiers[i:i + self.BATCH_SIZE]
            batch_num = (i // self.BATCH_SIZE) + 1
            self.logger.info(f"Resolving identifier batch {batch_num}/{total_batches} ({len(batch)} cards)")
            try:
                response = self._request('POST', '/cards/collection', json_body={'identifiers': batch})
                data = self._json_or_raise(response)
            except ScryfallAPIError as e:
                self.logger.warning(f"Identifier batch {batch_num} failed: {e}")
                continue

            not_found = data.get('not_found') or []
            if not_found:
                self.logger.debug(f"{len(not_found)} identifiers not found in batch {batch_num}")
            records.extend(CardRecord.from_scryfall_data(card) for card in data.get('data', []))

        self.logger.info(f"Resolved {len(records)} of {len(identifiers)} identifiers")
        return records

    def search(self, query: str, order: str = 'edhrec', direction: str = 'asc', page: int = 1) -> List[CardRecord]:
        """
        Run a Scryfall full-text search and return one page of results.

        Args:
            query: Scryfall search syntax, e.g. "id<=WU legal:commander"
            order: Sort field (edhrec rank by default)
            direction: 'asc' or 'desc'
            page: Result page to fetch; only a single page is ever requested

        Returns:
            Ranked card records; empty when the query matches nothing

        Raises:
            ScryfallAPIError: On transport errors or unexpected responses
        """
        self.logger.debug(f"Searching Scryfall: {query} (order={order} dir={direction} page={page})")
        params = {'q': query, 'order': order, 'dir': direction, 'page': page}
        response = self._request('GET', '/cards/search', params=params)

        if response.status_code == 404:
            self.logger.debug(f"No search results for: {query}")
            return []
        data = self._json_or_raise(response)
        return [CardRecord.from_scryfall_data(card) for card in data.get('data', [])]

    def _request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                 json_body: Optional[Dict[str, Any]] = None) -> requests.Response:
        """Send one request, converting transport failures into ScryfallAPIError."""
        self._rate_limit_with_jitter()
        url = f"{self.BASE_URL}{path}"
        try:
            response = self.session.request(method, url, params=params, json=json_body, timeout=self.timeout)
        except requests.Timeout:
            raise ScryfallAPIError("Request timeout")
        except requests.ConnectionError as e:
            raise ScryfallAPIError(f"Connection error: {e}")
        except requests.RequestException as e:
            raise ScryfallAPIError(f"Network error: {e}")

        if response.status_code == 429:
            retry_after = response.headers.get('Retry-After', '1')
            raise ScryfallAPIError(f"Rate limited, retry after {retry_after}s")
        if response.status_code >= 500:
            raise ScryfallAPIError(f"Server error {response.status_code}: {response.text}")
        return response

    def _json_or_raise(self, response: requests.Response) -> Dict[str, Any]:
        if response.status_code != 200:
            raise ScryfallAPIError(f"API request failed with status {response.status_code}: {response.text}")
        try:
            return response.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise ScryfallAPIError(f"Invalid JSON response: {e}")

    def _rate_limit_with_jitter(self):
        """Apply rate limiting with a small jitter between consecutive requests."""
        current_time = time.time()
        time_since_last = current_time - self.last_request_time

        if time_since_last < self.min_request_interval:
            sleep_time = self.min_request_interval - time_since_last
            jitter = sleep_time * 0.2 * (random.random() - 0.5)
            time.sleep(max(0, sleep_time + jitter))

        self.last_request_time = time.time()
