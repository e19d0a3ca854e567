"""Tests for page enumeration."""

import pytest

from conftest import API, COORDS, issue
from issuemirror_core.exceptions import RemoteUnavailable
from issuemirror_core.http.decoder import RateLimitCounter
from issuemirror_core.pages import (
    PageTask,
    build_worklist,
    collection_template,
    enumerate_pages,
    page_number,
    page_url,
)
from issuemirror_core.resources import COMMENTS, ISSUES

TEMPLATE = f"{API}/repos/o/r/issues?state=all&per_page=2&page={{page}}"


class TestTemplates:
    def test_issues_template(self):
        assert collection_template(COORDS, ISSUES, per_page=2) == TEMPLATE

    def test_comments_template(self):
        assert collection_template(COORDS, COMMENTS, per_page=100) == (
            f"{API}/repos/o/r/issues/comments?state=all&per_page=100&page={{page}}"
        )

    def test_page_url_and_back(self):
        url = page_url(TEMPLATE, 12)
        assert url.endswith("&page=12")
        assert page_number(url) == 12

    def test_page_number_missing(self):
        assert page_number(f"{API}/repos/o/r/issues") is None


class TestBuildWorklist:
    def test_one_task_per_page(self):
        tasks = build_worklist(TEMPLATE, 3, {})
        assert [t.page for t in tasks] == [1, 2, 3]
        assert len({t.url for t in tasks}) == 3
        assert all(t.token == "" for t in tasks)

    def test_known_pages_reuse_tokens(self):
        records = {page_url(TEMPLATE, 1): "t1", page_url(TEMPLATE, 3): "t3"}
        tasks = build_worklist(TEMPLATE, 3, records)
        assert [t.token for t in tasks] == ["t1", "", "t3"]

    def test_records_past_last_page_are_not_revisited(self):
        records = {page_url(TEMPLATE, p): f"t{p}" for p in (1, 2, 5)}
        tasks = build_worklist(TEMPLATE, 3, records)

        assert [t.page for t in tasks] == [1, 2, 3]
        assert page_url(TEMPLATE, 5) in records  # left untouched

    def test_exactly_n_regardless_of_known_pages(self):
        records = {page_url(TEMPLATE, p): "t" for p in range(1, 20)}
        assert len(build_worklist(TEMPLATE, 4, records)) == 4

    def test_numeric_order_past_page_nine(self):
        tasks = build_worklist(TEMPLATE, 11, {})
        assert [t.page for t in tasks] == list(range(1, 12))

    def test_records_for_other_templates_ignored(self):
        other = f"{API}/repos/o/r/issues?state=all&per_page=100&page=1"
        tasks = build_worklist(TEMPLATE, 1, {other: "zzz"})
        assert tasks == [PageTask(page=1, url=page_url(TEMPLATE, 1), token="")]


class TestEnumeratePages:
    def test_probe_sizes_worklist(self, remote, client):
        remote.data["issues"] = [issue(n) for n in range(1, 6)]  # 3 pages of 2

        tasks = enumerate_pages(client, TEMPLATE, {})

        assert [t.page for t in tasks] == [1, 2, 3]
        assert [r.method for r in remote.requests] == ["HEAD"]

    def test_single_page_without_link(self, remote, client):
        remote.data["issues"] = [issue(1)]
        assert len(enumerate_pages(client, TEMPLATE, {})) == 1

    def test_empty_collection_still_has_page_one(self, client):
        assert [t.page for t in enumerate_pages(client, TEMPLATE, {})] == [1]

    def test_probe_failure_raises(self, remote, client):
        remote.probe_status = 401
        with pytest.raises(RemoteUnavailable):
            enumerate_pages(client, TEMPLATE, {})
        assert remote.gets() == []

    def test_probe_updates_rate_limit(self, client):
        counter = RateLimitCounter()
        enumerate_pages(client, TEMPLATE, {}, counter)
        assert counter.remaining == 4999
