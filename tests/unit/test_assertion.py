"""
Unit tests for the Assertion DSL: predicates, negation, value rendering and
per-kind size dispatch.
"""

import re
from collections.abc import Sized

import pytest

from trialrun.core.assertion import (
    Assertion,
    AssertionFailure,
    ValueKind,
    classify,
    format_message,
    render,
)


class Widget:
    pass


class TestClassifyAndRender:
    """Value kinds and how values appear in failure messages."""

    @pytest.mark.parametrize("value, kind", [
        (None, ValueKind.NULL),
        (True, ValueKind.BOOLEAN),
        (0, ValueKind.INTEGER),
        (1.5, ValueKind.FLOAT),
        ("text", ValueKind.TEXT),
        ([1, 2], ValueKind.SEQUENCE),
        ((1,), ValueKind.SEQUENCE),
        ({1}, ValueKind.SEQUENCE),
        ({"a": 1}, ValueKind.MAPPING),
        (Widget(), ValueKind.OBJECT),
        (b"bytes", ValueKind.OBJECT),
    ])
    def test_classify(self, value, kind):
        assert classify(value) is kind

    def test_booleans_are_not_integers(self):
        assert classify(False) is ValueKind.BOOLEAN

    @pytest.mark.parametrize("value, rendered", [
        (True, "TRUE"),
        (False, "FALSE"),
        (None, "NULL"),
        ("abc", '"abc"'),
        (5, "5"),
        (2.5, "2.5"),
        ([1, 2, 3], "Array"),
        ({"a": 1}, "Array"),
        (Widget(), 'Object of type "Widget"'),
        (Widget, '"Widget"'),
    ])
    def test_render(self, value, rendered):
        assert render(value) == rendered

    def test_format_message_picks_polarity(self):
        template = '%s {{does not have|has}} a size of %s'

        assert format_message(template, ("x", 3)) == '"x" does not have a size of 3'
        assert format_message(template, ("x", 3), negative=True) == '"x" has a size of 3'

    def test_format_message_collapses_whitespace(self):
        assert format_message('%s is {{not|}} true', (1,), negative=True) == '1 is true'


class TestAssertion:
    """Assertions made through a registered test."""

    @pytest.fixture
    def host(self, make_test):
        return make_test("assertion host")

    def test_equal_passes_and_counts(self, host):
        assert host.is_(5).equal(5) is not None
        assert host.assertions == 1

    def test_equal_failure_message(self, host):
        with pytest.raises(AssertionFailure, match="^5 is not equal to 6$"):
            host.is_(5).equal(6)
        assert host.assertions == 1

    def test_equal_is_strict_about_type(self, host):
        with pytest.raises(AssertionFailure, match=re.escape('1 is not equal to "1"')):
            host.is_(1).equal("1")

    def test_equivalent_to_is_loose(self, host):
        host.is_(1).equivalent_to(1.0)
        host.is_([1, 2]).equivalent_to([1, 2])
        assert host.assertions == 2

    def test_negated_failure_message(self, host):
        with pytest.raises(AssertionFailure, match="^1 is equivalent to 1$"):
            host.is_(1).not_().equivalent_to(1)

    def test_not_is_one_way(self, host):
        assertion = host.is_(1)
        assert assertion.not_().not_() is assertion
        assert assertion.negative is True

        # Still negated, so comparing unequal values holds
        assertion.equal(2)

    def test_failed_check_counts_once(self, host):
        with pytest.raises(AssertionFailure):
            host.is_(True).false()
        host.is_(True).true()
        assert host.assertions == 2

    def test_check_returns_true(self, host):
        assert Assertion(1, host).check(True, 'never shown') is True

    def test_chaining(self, host):
        host.is_("abc").size(3).match(r"^a").contain("b")
        assert host.assertions == 3

    def test_does_is_an_alias(self, host):
        assert isinstance(host.does(1), Assertion)


class TestSize:
    """size/length dispatch on the kind of value."""

    @pytest.fixture
    def host(self, make_test):
        return make_test("size host")

    def test_array(self, host):
        host.is_([1, 2, 3]).size(3)
        with pytest.raises(AssertionFailure, match="^Array does not have a size of 4$"):
            host.is_([1, 2, 3]).size(4)

    def test_mapping_counts_keys(self, host):
        host.is_({"a": 1, "b": 2}).length(2)

    def test_string(self, host):
        host.is_("Unicorns!").size(9)
        with pytest.raises(AssertionFailure, match='^"Unicorns!" does not have a string length of 5$'):
            host.is_("Unicorns!").size(5)

    def test_integer(self, host):
        host.is_(1).size(1)
        with pytest.raises(AssertionFailure, match="^Integer 1 does not have a size of 3$"):
            host.is_(1).size(3)

    def test_negated(self, host):
        host.is_([1, 2, 3]).not_().size(4)
        with pytest.raises(AssertionFailure, match="^Array has a size of 3$"):
            host.is_([1, 2, 3]).not_().size(3)

    @pytest.mark.parametrize("value", [True, None, 1.5, Widget()])
    def test_unsupported_kinds_make_no_assertion(self, host, value):
        host.is_(value).size(1)
        assert host.assertions == 0


class TestPredicates:

    @pytest.fixture
    def host(self, make_test):
        return make_test("predicate host")

    def test_booleans(self, host):
        host.is_(False).boolean()
        host.is_(1).not_().boolean()
        with pytest.raises(AssertionFailure, match="^1 is not a boolean$"):
            host.is_(1).boolean()

    def test_true_and_false_are_identity_checks(self, host):
        with pytest.raises(AssertionFailure, match="^1 is not true$"):
            host.is_(1).true()
        with pytest.raises(AssertionFailure, match='^"" is not false$'):
            host.is_("").false()

    def test_none(self, host):
        host.is_(None).none()
        with pytest.raises(AssertionFailure, match="^NULL is null$"):
            host.is_(None).not_().none()

    def test_blank(self, host):
        host.is_("").blank()
        host.is_(0).blank()
        host.is_([]).blank()
        with pytest.raises(AssertionFailure, match="^Array is not empty$"):
            host.is_([1]).blank()
        with pytest.raises(AssertionFailure, match='^"" is empty$'):
            host.is_("").not_().blank()

    def test_an_array(self, host):
        host.is_([1]).an_array()
        host.is_({"a": 1}).an_array()
        with pytest.raises(AssertionFailure, match='^"abc" is not an array$'):
            host.is_("abc").an_array()

    def test_traversable(self, host):
        host.is_([1]).traversable()
        host.is_(iter(range(3))).traversable()
        with pytest.raises(AssertionFailure, match='^"abc" is not traversable$'):
            host.is_("abc").traversable()

    def test_an_instance_of(self, host):
        host.is_(Widget()).an_instance_of(Widget)
        with pytest.raises(AssertionFailure, match='^5 is not an instance of "Widget"$'):
            host.is_(5).an_instance_of(Widget)

    def test_implement(self, host):
        host.is_(list).implement(Sized)
        host.is_([1]).implement(Sized)
        with pytest.raises(AssertionFailure, match='^Class "Widget" does not implement interface "Sized"$'):
            host.is_(Widget).implement(Sized)

    def test_contain(self, host):
        host.is_([1, 2]).contain(2)
        host.is_({"a": 1}).contain("a")
        with pytest.raises(AssertionFailure, match="^Array does not contain 3$"):
            host.is_([1, 2]).contain(3)
        with pytest.raises(AssertionFailure, match="^5 does not contain 5$"):
            host.is_(5).contain(5)

    def test_match(self, host):
        host.is_("abc123").match(r"\d+")
        with pytest.raises(AssertionFailure, match=re.escape('"abc" does not match the regular expression "\\d"')):
            host.is_("abc").match(r"\d")
        with pytest.raises(AssertionFailure, match=re.escape('"abc1" matches the regular expression "\\d"')):
            host.is_("abc1").not_().match(r"\d")
