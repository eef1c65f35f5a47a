import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from sitesnap.state import ClaimSet, CrawlerState, DownloadLedger


def test_claim_reports_first_insert_only():
    claims = ClaimSet()
    assert claims.claim("https://example.org/") is True
    assert claims.claim("https://example.org/") is False
    assert "https://example.org/" in claims
    assert len(claims) == 1


def test_concurrent_claims_have_single_winner():
    claims = ClaimSet()
    barrier = threading.Barrier(16)

    def contend(_):
        barrier.wait()
        return claims.claim("https://example.org/page")

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(contend, range(16)))

    assert results.count(True) == 1
    assert len(claims) == 1


def test_ledger_tracks_latest_stored_path():
    ledger = DownloadLedger()
    url = "https://example.org/logo.png"
    assert ledger.claim(url)
    assert url in ledger
    assert ledger.stored_path(url) is None
    ledger.record(url, Path("/a/img/logo.png"))
    ledger.record(url, Path("/b/img/logo.png"))
    assert ledger.stored_path(url) == Path("/b/img/logo.png")
    assert len(ledger) == 1


def test_state_instances_do_not_share_sets():
    first, second = CrawlerState(), CrawlerState()
    first.visited.claim("https://example.org/")
    assert "https://example.org/" not in second.visited
