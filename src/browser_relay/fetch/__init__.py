"""Fetch abstraction — direct HTTP or browser-relayed retrieval of URL bodies."""

from browser_relay.fetch.fetcher import BrowserFetcher, Fetcher, HTTPFetcher

__all__ = ["BrowserFetcher", "Fetcher", "HTTPFetcher"]
