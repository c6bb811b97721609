"""
Container scanner tests: recursion, pagination, dedup and failure isolation.
"""

import asyncio

from reconciliation.reporting import format_scan_report
from reconciliation.scanner import ContainerScanner, unique_candidates


def _scan(ctx, *roots):
    scanner = ContainerScanner(ctx)
    return asyncio.run(scanner.scan_many(roots))


class TestScanRecursion:

    def test_collects_non_archived_assets_from_nested_collections(self, fake_api, make_ctx):
        fake_api.add_collection("root", "Root", [
            fake_api.asset_entry("a1", "NOT_ARCHIVED"),
            fake_api.asset_entry("a2", "ARCHIVED"),
            fake_api.collection_entry("child"),
        ])
        fake_api.add_collection("child", "Child", [
            fake_api.asset_entry("a3", "FAILED_TO_ARCHIVE"),
        ])

        [report] = _scan(make_ctx(), "root")

        assert [c.id for c in report.candidates] == ["a1", "a3"]
        assert report.title == "Root"
        assert report.status_counts == {"NOT_ARCHIVED": 1, "ARCHIVED": 1, "FAILED_TO_ARCHIVE": 1}
        assert report.total_assets == 3
        assert report.non_archived == 2

    def test_candidate_keeps_container_observed_status(self, fake_api, make_ctx):
        fake_api.add_collection("root", "Root", [fake_api.asset_entry("a1", "ARCHIVING", title="Clip")])

        [report] = _scan(make_ctx(), "root")

        candidate = report.candidates[0]
        assert candidate.container_observed_status == "ARCHIVING"
        assert candidate.title == "Clip"
        assert candidate.collection_title == "Root"

    def test_missing_status_counts_as_unknown_candidate(self, fake_api, make_ctx):
        entry = fake_api.asset_entry("a1")
        entry["archive_status"] = None
        fake_api.add_collection("root", "Root", [entry])

        [report] = _scan(make_ctx(), "root")

        assert report.status_counts == {"UNKNOWN": 1}
        assert report.candidates[0].container_observed_status == "UNKNOWN"

    def test_depth_cap_stops_descent(self, fake_api, make_ctx):
        fake_api.add_collection("c0", "c0", [fake_api.collection_entry("c1"), fake_api.asset_entry("top")])
        fake_api.add_collection("c1", "c1", [fake_api.collection_entry("c2"), fake_api.asset_entry("a1")])
        fake_api.add_collection("c2", "c2", [fake_api.asset_entry("deep")])

        [two_levels] = _scan(make_ctx(max_depth=2), "c0")
        [one_level] = _scan(make_ctx(max_depth=1), "c0")

        assert [c.id for c in two_levels.candidates] == ["a1", "top"]
        assert [c.id for c in one_level.candidates] == ["top"]

    def test_cyclic_collections_visited_once(self, fake_api, make_ctx):
        fake_api.add_collection("c1", "c1", [fake_api.collection_entry("c2"), fake_api.asset_entry("a1")])
        fake_api.add_collection("c2", "c2", [fake_api.collection_entry("c1")])

        [report] = _scan(make_ctx(), "c1")

        assert [c.id for c in report.candidates] == ["a1"]
        contents_calls = [p for _, p in fake_api.reads() if "/contents/" in p]
        assert len(contents_calls) == 2


class TestPagination:

    def test_pages_requested_in_order(self, fake_api, make_ctx):
        fake_api.add_collection("root", "Root", [fake_api.asset_entry(f"a{i}") for i in range(5)])

        [report] = _scan(make_ctx(page_size=2), "root")

        assert [c.id for c in report.candidates] == ["a0", "a1", "a2", "a3", "a4"]
        pages = [p for _, p in fake_api.reads() if "/contents/" in p]
        assert pages == [
            "assets/v1/collections/root/contents/?page=1&per_page=2",
            "assets/v1/collections/root/contents/?page=2&per_page=2",
            "assets/v1/collections/root/contents/?page=3&per_page=2",
        ]

    def test_child_collection_scanned_before_next_page(self, fake_api, make_ctx):
        fake_api.add_collection("root", "Root", [
            fake_api.collection_entry("child"),
            fake_api.asset_entry("a1"),
            fake_api.asset_entry("a2"),
        ])
        fake_api.add_collection("child", "Child", [fake_api.asset_entry("c1")])

        [report] = _scan(make_ctx(page_size=1), "root")

        assert [c.id for c in report.candidates] == ["c1", "a1", "a2"]


class TestDedup:

    def test_asset_under_two_roots_emitted_once(self, fake_api, make_ctx):
        fake_api.add_collection("r1", "One", [fake_api.asset_entry("shared"), fake_api.asset_entry("only1")])
        fake_api.add_collection("r2", "Two", [fake_api.asset_entry("shared"), fake_api.asset_entry("only2")])

        reports = _scan(make_ctx(), "r1", "r2")
        candidates = unique_candidates(reports)

        ids = [c.id for c in candidates]
        assert ids.count("shared") == 1
        assert sorted(ids) == ["only1", "only2", "shared"]
        # Both roots still count the shared asset in their histograms
        assert reports[1].status_counts == {"NOT_ARCHIVED": 2}

    def test_nested_root_gets_its_own_histogram(self, fake_api, make_ctx):
        fake_api.add_collection("parent", "Parent", [
            fake_api.collection_entry("child"),
            fake_api.asset_entry("p1", "ARCHIVED"),
        ])
        fake_api.add_collection("child", "Child", [fake_api.asset_entry("a1", "FAILED_TO_ARCHIVE")])

        parent, child = _scan(make_ctx(), "parent", "child")

        assert parent.status_counts == {"FAILED_TO_ARCHIVE": 1, "ARCHIVED": 1}
        assert child.title == "Child"
        assert child.status_counts == {"FAILED_TO_ARCHIVE": 1}
        assert format_scan_report(child) == ['[!!] "Child" -- 1 assets -- FAILED_TO_ARCHIVE=1']
        # Already emitted under the parent
        assert child.candidates == []
        assert [c.id for c in unique_candidates([parent, child])] == ["a1"]

    def test_same_root_twice_scanned_once(self, fake_api, make_ctx):
        fake_api.add_collection("r1", "One", [fake_api.asset_entry("a1")])

        reports = _scan(make_ctx(), "r1", "r1")

        assert len(unique_candidates(reports)) == 1

    def test_fresh_context_does_not_share_state(self, fake_api, make_ctx):
        fake_api.add_collection("r1", "One", [fake_api.asset_entry("a1")])

        _scan(make_ctx(), "r1")
        [report] = _scan(make_ctx(), "r1")

        assert [c.id for c in report.candidates] == ["a1"]


class TestFailureIsolation:

    def test_failed_subtree_abandoned_siblings_continue(self, fake_api, make_ctx):
        fake_api.add_collection("root", "Root", [
            fake_api.collection_entry("bad"),
            fake_api.collection_entry("good"),
            fake_api.asset_entry("a1"),
        ])
        fake_api.add_collection("bad", "Bad", [fake_api.asset_entry("lost")])
        fake_api.add_collection("good", "Good", [fake_api.asset_entry("g1")])
        fake_api.fail("collections/bad/contents/")

        [report] = _scan(make_ctx(), "root")

        assert [c.id for c in report.candidates] == ["g1", "a1"]
        assert report.failed_collections == ["bad"]

    def test_failure_on_later_page_keeps_earlier_pages(self, fake_api, make_ctx):
        fake_api.add_collection("root", "Root", [fake_api.asset_entry(f"a{i}") for i in range(4)])
        fake_api.fail("collections/root/contents/?page=2")

        [report] = _scan(make_ctx(page_size=2), "root")

        assert [c.id for c in report.candidates] == ["a0", "a1"]
        assert report.failed_collections == ["root"]

    def test_title_lookup_failure_falls_back_to_id(self, fake_api, make_ctx):
        # Contents are listed but the collection record itself is unreachable
        fake_api.contents["root"] = [fake_api.asset_entry("a1")]

        [report] = _scan(make_ctx(), "root")

        assert report.title == "root"
        assert [c.id for c in report.candidates] == ["a1"]
