"""Human-readable progress and summary output for indexing runs."""

from __future__ import annotations

import sys
from collections.abc import Mapping, Sequence
from typing import TextIO

from gsc_indexer.schemas import StatusKind

STATUS_EMOJIS: dict[StatusKind, str] = {
    StatusKind.SUBMITTED_AND_INDEXED: "✅",
    StatusKind.DUPLICATE_WITHOUT_USER_SELECTED_CANONICAL: "😵",
    StatusKind.CRAWLED_CURRENTLY_NOT_INDEXED: "👀",
    StatusKind.DISCOVERED_CURRENTLY_NOT_INDEXED: "👀",
    StatusKind.PAGE_WITH_REDIRECT: "🔀",
    StatusKind.URL_IS_UNKNOWN_TO_GOOGLE: "❓",
    StatusKind.RATE_LIMITED: "🚦",
    StatusKind.FORBIDDEN: "🔐",
    StatusKind.ERROR: "❌",
}


def emoji_for_status(status: StatusKind) -> str:
    return STATUS_EMOJIS[status]


class ConsoleReporter:
    """Writes run progress to stdout and fatal errors to stderr."""

    def __init__(self, out: TextIO | None = None, err: TextIO | None = None) -> None:
        self._out = out
        self._err = err

    def _print(self, message: str = "") -> None:
        print(message, file=self._out or sys.stdout)

    def error(self, message: str) -> None:
        print(f"❌ {message}", file=self._err or sys.stderr)
        print("", file=self._err or sys.stderr)

    def processing_site(self, site_url: str) -> None:
        self._print(f"🔎 Processing site: {site_url}")

    def fetching_sitemaps(self) -> None:
        self._print("🔎 Fetching sitemaps and pages...")

    def pages_from_sitemaps(self, page_count: int, sitemap_count: int) -> None:
        noun = "sitemap" if sitemap_count == 1 else "sitemaps"
        self._print(f"👉 Found {page_count} URLs in {sitemap_count} {noun}")

    def pages_from_list(self, page_count: int) -> None:
        self._print(f"👉 Found {page_count} URLs in the provided list")

    def batch_complete(self, batch_number: int, batch_count: int) -> None:
        self._print(f"📦 Batch {batch_number} of {batch_count} complete")

    def status_summary(
        self, total_pages: int, pages_per_status: Mapping[StatusKind, Sequence[str]]
    ) -> None:
        self._print()
        self._print(f"👍 Done, here's the status of all {total_pages} pages:")
        for status, pages in pages_per_status.items():
            if not pages:
                continue
            emoji = emoji_for_status(status)
            self._print(f"• {emoji} {status.value}: {len(pages)} pages")
        self._print()

    def indexable_pages(self, pages: Sequence[str]) -> None:
        if not pages:
            self._print(
                "✨ There are no pages that can be indexed. "
                "Everything is already indexed!"
            )
        else:
            self._print(f"✨ Found {len(pages)} pages that can be indexed.")
            for url in pages:
                self._print(f"• {url}")
        self._print()

    def processing_url(self, url: str) -> None:
        self._print(f"📄 Processing url: {url}")

    def indexing_requested(self) -> None:
        self._print(
            "🚀 Indexing requested successfully. "
            "It may take a few days for Google to process it."
        )

    def indexing_already_requested(self) -> None:
        self._print(
            "🕛 Indexing already requested previously. "
            "It may take a few days for Google to process it."
        )

    def indexing_failed(self, url: str, status_code: int | None) -> None:
        detail = f" (HTTP {status_code})" if status_code is not None else ""
        self._print(f"❌ Indexing request for {url} failed{detail}.")

    def rotating_to(self, client_email: str) -> None:
        self._print(f"🔄 Rotating to service account {client_email}")

    def rotations_exhausted(self, url: str) -> None:
        self._print(
            f"❌ Failed to process URL {url} "
            "with any of the provided service accounts."
        )

    def url_done(self) -> None:
        self._print()

    def all_done(self) -> None:
        self._print("👍 All done!")
        self._print()


__all__ = ["ConsoleReporter", "STATUS_EMOJIS", "emoji_for_status"]
