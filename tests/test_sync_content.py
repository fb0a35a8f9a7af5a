"""Tests for ContentItem.

Covers:
- Repository path per record type (posts by year, pages, courses, lessons
  grouped by course and module, label fallback)
- Directory and filename filters
- Front matter field order and omission rules
- File content, blob hash and needs_sync / is_renamed
- from_blob mapping of front matter onto record fields
- Repository links and last editor lookup
- Pending items refuse derived operations
"""

from __future__ import annotations

from datetime import datetime

import pytest

from cms_git_sync.sync.blob import RepositoryBlob, git_blob_sha
from cms_git_sync.sync.content import (
    META_EDIT_LAST,
    META_GITHUB_PATH,
    META_SHA,
    ContentItem,
)
from cms_git_sync.sync.hooks import DIRECTORY_PUBLISHED, FILENAME, RECORD_META


def _item(app, backend, record_id=1, **fields):
    backend.add(record_id, **fields)
    return ContentItem.load(app, record_id)


# ---------------------------------------------------------------------------
# Repository path
# ---------------------------------------------------------------------------


class TestGithubPath:
    """Tests for github_path() and its parts."""

    def test_post_grouped_by_year(self, app, backend):
        item = _item(
            app, backend, title="Hello World", date=datetime(2023, 12, 31, 23, 0)
        )
        assert item.github_path() == "posts/2023/hello-world.md"

    def test_slug_preferred_over_title(self, app, backend):
        item = _item(app, backend, title="Hello World", name="custom-slug")
        assert item.github_path() == "posts/2024/custom-slug.md"

    @pytest.mark.parametrize(
        "record_type, directory",
        [
            ("page", "pages/"),
            ("glossary", "glossary/"),
            ("fieldatlas", "fieldatlas/"),
            ("newsletters", "newsletters/2024/"),
        ],
    )
    def test_fixed_directories(self, app, backend, record_type, directory):
        item = _item(app, backend, type=record_type, name="entry")
        assert item.github_directory() == directory

    def test_course_uses_title_not_slug(self, app, backend):
        item = _item(
            app, backend, type="course", title="Rust 101", name="rust-intro"
        )
        assert item.github_path() == "courses/rust-101/rust-intro.md"

    def test_lesson_under_course_and_module(
        self, app, backend, course_structure
    ):
        backend.add(4, type="course", title="Rust 101")
        course_structure.courses[5] = 4
        course_structure.modules[5] = "Ownership"
        item = _item(app, backend, 5, type="lesson", title="Borrowing")

        assert item.github_path() == "courses/rust-101/ownership/borrowing.md"
        assert item.diagnostics == []

    def test_lessons_in_distinct_modules_do_not_collide(
        self, app, backend, course_structure
    ):
        backend.add(4, type="course", title="Rust 101")
        for lesson_id, module in ((5, "Basics"), (6, "Advanced")):
            course_structure.courses[lesson_id] = 4
            course_structure.modules[lesson_id] = module
            backend.add(lesson_id, type="lesson", title="Summary")

        first = ContentItem.load(app, 5).github_path()
        second = ContentItem.load(app, 6).github_path()

        assert first == "courses/rust-101/basics/summary.md"
        assert second == "courses/rust-101/advanced/summary.md"

    def test_module_instructor_suffix_dropped(
        self, app, backend, course_structure
    ):
        backend.add(4, type="course", title="Rust 101")
        course_structure.courses[5] = 4
        course_structure.modules[5] = "Ownership (Jane Doe)"
        item = _item(app, backend, 5, type="lesson", title="Borrowing")

        assert item.github_directory() == "courses/rust-101/ownership/"

    def test_missing_module_falls_back_to_course(
        self, app, backend, course_structure
    ):
        backend.add(4, type="course", title="Rust 101")
        course_structure.courses[5] = 4
        item = _item(app, backend, 5, type="lesson", title="Borrowing")

        assert item.github_path() == "courses/rust-101/borrowing.md"
        assert item.diagnostics == [
            "Module for lesson borrowing could not be grabbed"
        ]

    def test_missing_course_noted(self, app, backend, course_structure):
        course_structure.modules[5] = "Ownership"
        item = _item(app, backend, 5, type="lesson", title="Borrowing")

        assert item.github_directory() == "courses/ownership/"
        assert item.diagnostics == [
            "Course for lesson borrowing could not be found"
        ]

    def test_other_type_uses_plural_label(self, app, backend):
        backend.labels["recipe"] = "Tasty Recipes"
        item = _item(app, backend, type="recipe", name="soup")
        assert item.github_path() == "tasty-recipes/soup.md"

    def test_other_type_without_label_at_root(self, app, backend):
        item = _item(app, backend, type="recipe", name="soup")
        assert item.github_path() == "soup.md"

    def test_directory_and_filename_filters(self, app, backend):
        app.hooks.add_filter(
            DIRECTORY_PUBLISHED, lambda name, item: "_posts/"
        )
        app.hooks.add_filter(
            FILENAME, lambda filename, item: f"{item.id}-{filename}"
        )
        item = _item(app, backend, name="hello")

        assert item.github_path() == "_posts/1-hello.md"


# ---------------------------------------------------------------------------
# Front matter
# ---------------------------------------------------------------------------


class TestMeta:
    """Tests for meta() and front_matter()."""

    def test_field_order_and_values(self, app, backend):
        backend.add_user(3, "Jane Doe")
        backend.attached_terms[(1, "post_tag")] = ["python"]
        backend.attached_terms[(1, "category")] = ["News"]
        item = _item(
            app, backend, title="Hello", name="hello", author=3, excerpt="Short"
        )

        meta = item.meta()

        assert list(meta) == [
            "id",
            "title",
            "slug",
            "author",
            "date",
            "excerpt",
            "layout",
            "link",
            "published",
            "tags",
            "categories",
        ]
        assert meta["author"] == "Jane Doe"
        assert meta["date"] == "2024-03-05 10:30:00"
        assert meta["layout"] == "post"
        assert meta["link"] == "https://example.com/?p=1"
        assert meta["published"] is True
        assert meta["tags"] == ["python"]
        assert meta["categories"] == ["News"]

    def test_empty_slug_and_excerpt_omitted(self, app, backend):
        meta = _item(app, backend).meta()
        assert "slug" not in meta
        assert "excerpt" not in meta

    def test_unpublished_record(self, app, backend):
        meta = _item(app, backend, status="trash").meta()
        assert meta["published"] is False

    def test_missing_author_is_empty(self, app, backend):
        assert _item(app, backend).meta()["author"] == ""

    def test_ignore_author(self, app, backend, config):
        config.ignore_author = True
        backend.add_user(3, "Jane Doe")
        meta = _item(app, backend, author=3).meta()
        assert "author" not in meta

    def test_record_meta_filter(self, app, backend):
        app.hooks.add_filter(
            RECORD_META, lambda meta, item: {**meta, "custom": item.id}
        )
        assert _item(app, backend).meta()["custom"] == 1

    def test_front_matter_block(self, app, backend):
        text = _item(app, backend, title="Hello").front_matter()
        assert text.startswith("---\nid: 1\ntitle: Hello\n")
        assert text.endswith("---\n")


# ---------------------------------------------------------------------------
# Content and blob
# ---------------------------------------------------------------------------


class TestContent:
    """Tests for github_content(), to_blob() and needs_sync()."""

    def test_content_is_front_matter_plus_body(self, app, backend):
        item = _item(app, backend, content="Body text\n")
        content = item.github_content()

        assert content == item.front_matter() + "Body text\n"

    def test_converter_applied(self, app, backend):
        app.converter = lambda html: html.replace("<p>", "").replace("</p>", "\n")
        item = _item(app, backend, content="<p>Para</p>")

        assert item.github_content().endswith("---\nPara\n")

    def test_dont_export_content_keeps_blob_body(self, app, backend, config):
        config.dont_export_content = True
        item = _item(app, backend, content="platform body")
        item.set_blob(
            RepositoryBlob.from_content("posts/2024/x.md", "---\na: 1\n---\nfile body\n")
        )

        assert item.github_content().endswith("---\nfile body\n")

    def test_dont_export_content_without_blob_uses_record(
        self, app, backend, config
    ):
        config.dont_export_content = True
        item = _item(app, backend, content="platform body")
        assert item.github_content().endswith("platform body")

    def test_blob_sha_is_git_hash_of_content(self, app, backend):
        item = _item(app, backend, name="hello")
        blob = item.to_blob()

        assert blob.path == "posts/2024/hello.md"
        assert blob.sha == git_blob_sha(blob.content)
        assert item.to_blob() == blob

    def test_needs_sync_when_never_pushed(self, app, backend):
        assert _item(app, backend).needs_sync() is True

    def test_in_sync_after_push(self, app, backend):
        item = _item(app, backend, name="hello")
        blob = item.to_blob()
        item.set_sha(blob.sha)
        item.set_old_github_path(blob.path)

        assert item.is_on_github()
        assert not item.is_renamed()
        assert item.needs_sync() is False

    def test_content_change_needs_sync(self, app, backend):
        item = _item(app, backend, name="hello", content="v1")
        blob = item.to_blob()
        item.set_sha(blob.sha)
        item.set_old_github_path(blob.path)

        backend.add(1, name="hello", content="v2")
        assert ContentItem.load(app, 1).needs_sync() is True

    def test_rename_needs_sync(self, app, backend):
        item = _item(app, backend, name="hello")
        item.set_sha(item.to_blob().sha)
        backend.meta[1][META_GITHUB_PATH] = "posts/2024/old-name.md"

        assert item.is_renamed()
        assert item.needs_sync() is True

    def test_unreadable_sha_is_empty(self, app, backend, monkeypatch):
        item = _item(app, backend)

        def broken(record_id, key):
            raise OSError("meta table unavailable")

        monkeypatch.setattr(backend, "get_meta", broken)
        assert item.sha() == ""


# ---------------------------------------------------------------------------
# Construction from a repository file
# ---------------------------------------------------------------------------


_FILE = """---
ID: 1
title: From Git
slug: from-git
layout: page
published: true
tags:
- python
author: Jane Doe
---
Body from git
"""


class TestFromBlob:
    """Tests for ContentItem.from_blob()."""

    def test_maps_front_matter_to_fields(self, app, backend):
        backend.add(1)
        blob = RepositoryBlob.from_content("/pages/from-git.md", _FILE)

        item = ContentItem.from_blob(app, blob)

        assert not item.is_new()
        assert item.id == 1
        assert item.args == {
            "content": "Body from git\n",
            "type": "page",
            "status": "publish",
            "title": "From Git",
            "name": "from-git",
            "id": 1,
        }
        assert item.import_meta == {
            "tags": ["python"],
            "author": "Jane Doe",
            META_SHA: blob.sha,
        }
        assert item.blob is blob

    def test_path_recorded_for_existing_record(self, app, backend):
        backend.add(1)
        ContentItem.from_blob(
            app, RepositoryBlob.from_content("pages/from-git.md", _FILE)
        )
        assert backend.meta[1][META_GITHUB_PATH] == "pages/from-git.md"

    def test_unknown_id_is_pending(self, app, backend):
        item = ContentItem.from_blob(
            app, RepositoryBlob.from_content("pages/from-git.md", _FILE)
        )

        assert item.is_new()
        assert "id" not in item.args
        assert item.old_github_path() == "pages/from-git.md"
        assert backend.meta == {}

    def test_unpublished_becomes_draft(self, app):
        blob = RepositoryBlob.from_content(
            "posts/x.md", "---\ntitle: X\npublished: false\n---\nBody\n"
        )
        assert ContentItem.from_blob(app, blob).args["status"] == "draft"

    def test_file_without_front_matter(self, app):
        blob = RepositoryBlob.from_content("notes.md", "Just text\n")
        item = ContentItem.from_blob(app, blob)

        assert item.args == {"content": "Just text\n"}
        assert item.import_meta == {META_SHA: blob.sha}

    def test_legacy_front_matter_keys(self, app, backend):
        backend.add(4)
        blob = RepositoryBlob.from_content(
            "posts/2019/old-post.md",
            "---\n"
            "ID: 4\n"
            "post_title: Old Post\n"
            "post_name: old-post\n"
            "post_date: '2019-06-01 08:00:00'\n"
            "post_excerpt: Short\n"
            "layout: post\n"
            "---\n"
            "Legacy body\n",
        )

        item = ContentItem.from_blob(app, blob)

        assert item.id == 4
        assert item.args["title"] == "Old Post"
        assert item.args["name"] == "old-post"
        assert item.args["date"] == "2019-06-01 08:00:00"
        assert item.args["excerpt"] == "Short"
        assert item.import_meta == {META_SHA: blob.sha}

    def test_current_keys_win_over_legacy(self, app):
        blob = RepositoryBlob.from_content(
            "posts/x.md", "---\npost_title: Old\ntitle: New\n---\nBody\n"
        )
        item = ContentItem.from_blob(app, blob)

        assert item.args["title"] == "New"
        assert "post_title" not in item.import_meta


# ---------------------------------------------------------------------------
# Links, authorship and pending items
# ---------------------------------------------------------------------------


class TestLinksAndAuthor:
    def test_view_and_edit_urls(self, app, backend):
        item = _item(app, backend)
        item.set_old_github_path("posts/2024/record-1.md")

        assert item.github_view_url() == (
            "https://github.com/owner/site/blob/master/posts/2024/record-1.md"
        )
        assert item.github_edit_url() == (
            "https://github.com/owner/site/edit/master/posts/2024/record-1.md"
        )

    def test_last_modified_author(self, app, backend):
        backend.add_user(3, "Jane Doe", email="jane@example.com")
        item = _item(app, backend)
        backend.meta[1] = {META_EDIT_LAST: "3"}

        assert item.last_modified_author() == {
            "name": "Jane Doe",
            "email": "jane@example.com",
        }

    def test_last_modified_author_unknown(self, app, backend):
        item = _item(app, backend)
        assert item.last_modified_author() == {}


class TestPendingItem:
    """A pending item has no snapshot to derive anything from."""

    @pytest.mark.parametrize(
        "method", ["github_path", "github_content", "meta", "to_blob", "title"]
    )
    def test_derived_operations_raise(self, app, method):
        item = ContentItem.from_args(app, {"title": "Draft"})
        with pytest.raises(RuntimeError):
            getattr(item, method)()

    def test_pending_item_has_no_sync_state(self, app):
        item = ContentItem.from_args(app, {"title": "Draft"})
        assert item.sha() == ""
        assert item.stored_github_path() == ""
        assert not item.is_on_github()
