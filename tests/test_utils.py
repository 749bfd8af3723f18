"""
Tests for slug derivation, id-or-slug detection, ownership and pagination
"""
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from apps.blog.models import Category
from apps.blog.utils import can_modify, is_object_id, page_count, slugify, unique_slug


class TestSlugify:
    """Test cases for slugify"""

    @pytest.mark.parametrize("source,expected", [
        ("Hello World", "hello-world"),
        ("  Trim Me  ", "trim-me"),
        ("What's New in Python 3.12?", "whats-new-in-python-312"),
        ("multiple   spaces\tand\nbreaks", "multiple-spaces-and-breaks"),
        ("dash -- and -- dash", "dash-and-dash"),
        ("--leading and trailing--", "leading-and-trailing"),
        ("snake_case_stays", "snake_case_stays"),
        ("Café Crème", "caf-crme"),
    ])
    def test_slug_rules(self, source, expected):
        assert slugify(source) == expected

    def test_deterministic(self):
        assert slugify("Same Input Twice") == slugify("Same Input Twice")

    def test_empty_result_falls_back_to_entity_timestamp(self):
        with patch("apps.blog.utils.time.time", return_value=1700000000.5):
            assert slugify("!!!", "category") == "category-1700000000500"
            assert slugify("", "post") == "post-1700000000500"


class TestUniqueSlug:
    """Test cases for unique_slug"""

    def test_suffixes_taken_slugs(self, db):
        db.add_all([
            Category(name="News", slug="news"),
            Category(name="News 2", slug="news-2"),
        ])
        db.commit()

        assert unique_slug(db, Category, "news") == "news-3"
        assert unique_slug(db, Category, "sports") == "sports"

    def test_own_row_is_ignored(self, db):
        category = Category(name="News", slug="news")
        db.add(category)
        db.commit()

        assert unique_slug(db, Category, "news", exclude_id=category.id) == "news"


class TestIdentifiers:
    """Test cases for is_object_id"""

    @pytest.mark.parametrize("value,expected", [
        ("507f1f77bcf86cd799439011", True),
        ("507F1F77BCF86CD799439011", True),
        ("507f1f77bcf86cd79943901", False),
        ("507f1f77bcf86cd79943901g", False),
        ("hello-world", False),
        ("", False),
    ])
    def test_object_id_pattern(self, value, expected):
        assert is_object_id(value) is expected


class TestOwnership:
    """Test cases for can_modify"""

    def test_author_and_admin_may_modify(self):
        post = SimpleNamespace(author_id="a" * 24)
        author = SimpleNamespace(id="a" * 24, role="user")
        admin = SimpleNamespace(id="b" * 24, role="admin")
        stranger = SimpleNamespace(id="c" * 24, role="user")

        assert can_modify(author, post)
        assert can_modify(admin, post)
        assert not can_modify(stranger, post)


class TestPageCount:
    """Test cases for page_count"""

    @pytest.mark.parametrize("total,limit,expected", [
        (20, 9, 3),
        (18, 9, 2),
        (0, 10, 0),
        (1, 10, 1),
    ])
    def test_ceiling_division(self, total, limit, expected):
        assert page_count(total, limit) == expected
