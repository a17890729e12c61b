"""
Fluent assertions made against a value from within a test.

Each assertion builds a failure template containing polarity placeholders of
the form ``{{positive|negative}}``. The positive phrase is used when the
assertion is not negated. The template is resolved and formatted only when
the assertion fails.
"""

import re
from collections.abc import Iterable, Mapping, Sequence, Set
from enum import Enum
from typing import Any, Callable, Dict, Tuple

from ..handlers.error_handler import TrialRunError


class AssertionFailure(TrialRunError):
    """
    Raised when an assertion fails.

    If this escapes the body of a test, the test fails with its message.
    """
    pass


class ValueKind(Enum):
    """The kinds of value assertions know how to describe and measure."""

    NULL = 'null'
    BOOLEAN = 'boolean'
    INTEGER = 'integer'
    FLOAT = 'float'
    TEXT = 'text'
    SEQUENCE = 'sequence'
    MAPPING = 'mapping'
    OBJECT = 'object'


def classify(value: Any) -> ValueKind:
    """Map a value onto its ValueKind. Booleans are checked before integers."""
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, int):
        return ValueKind.INTEGER
    if isinstance(value, float):
        return ValueKind.FLOAT
    if isinstance(value, str):
        return ValueKind.TEXT
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    if isinstance(value, (Sequence, Set)) and not isinstance(value, (bytes, bytearray)):
        return ValueKind.SEQUENCE
    return ValueKind.OBJECT


def render(value: Any) -> str:
    """
    Render a value for a failure message.

    Containers are not expanded; the message only needs to tell kinds apart.
    """
    kind = classify(value)

    if kind is ValueKind.NULL:
        return 'NULL'
    if kind is ValueKind.BOOLEAN:
        return 'TRUE' if value else 'FALSE'
    if kind is ValueKind.TEXT:
        return f'"{value}"'
    if kind in (ValueKind.SEQUENCE, ValueKind.MAPPING):
        return 'Array'
    if kind in (ValueKind.INTEGER, ValueKind.FLOAT):
        return str(value)
    if isinstance(value, type):
        return f'"{value.__name__}"'
    return f'Object of type "{type(value).__name__}"'


POLARITY_PATTERN = re.compile(r'\{\{(?P<positive>[^{}]*)\|(?P<negative>[^{}]*)\}\}')


def format_message(template: str, args: Tuple[Any, ...], negative: bool = False) -> str:
    """
    Resolve polarity placeholders and substitute rendered arguments.

    Args:
        template: Message template using ``%s`` and ``{{positive|negative}}``
        args: Values to substitute, rendered with ``render``
        negative: Whether the assertion was negated

    Returns:
        str: The final failure message
    """
    branch = 'negative' if negative else 'positive'
    message = POLARITY_PATTERN.sub(lambda match: match.group(branch), template)
    message = re.sub(r'\s+', ' ', message).strip()

    return message % tuple(render(arg) for arg in args)


class Assertion:
    """
    An object against which assertions can be made.

    Created through ``Test.is_`` or ``Test.does``, used for one chain and
    then discarded.
    """

    def __init__(self, value: Any, test: Any):
        """
        Args:
            value: The value to assert against
            test: The test making the assertion; its assertion count is
                incremented once per check
        """
        self.value = value
        self.test = test
        self.negative = False

    def not_(self) -> 'Assertion':
        """Negate every following assertion in this chain."""
        self.negative = True
        return self

    def check(self, result: Any, template: str, *args: Any) -> bool:
        """
        Record an assertion and raise if it does not hold.

        Raises:
            AssertionFailure: If ``result`` XOR negation is false
        """
        self.test.increment_assertion_count()

        if bool(result) == self.negative:
            raise AssertionFailure(format_message(template, args, self.negative))

        return True

    def boolean(self) -> 'Assertion':
        self.check(isinstance(self.value, bool), '%s is {{not|}} a boolean', self.value)
        return self

    def true(self) -> 'Assertion':
        self.check(self.value is True, '%s is {{not|}} true', self.value)
        return self

    def false(self) -> 'Assertion':
        self.check(self.value is False, '%s is {{not|}} false', self.value)
        return self

    def none(self) -> 'Assertion':
        self.check(self.value is None, '%s is {{not|}} null', self.value)
        return self

    def equal(self, other: Any) -> 'Assertion':
        """Strict equality: both values share a type and compare equal."""
        result = type(self.value) is type(other) and self.value == other
        self.check(result, '%s is {{not|}} equal to %s', self.value, other)
        return self

    def equivalent_to(self, other: Any) -> 'Assertion':
        """Loose equality using ``==``."""
        self.check(self.value == other, '%s is {{not|}} equivalent to %s', self.value, other)
        return self

    def size(self, expected: int) -> 'Assertion':
        """
        Check the size of the value.

        Text is measured in characters, integers are compared literally and
        sequences and mappings by element count. Any other kind of value is
        left alone and no assertion is recorded.
        """
        handler = _SIZE_HANDLERS.get(classify(self.value))
        if handler is not None:
            handler(self, int(expected))
        return self

    def length(self, expected: int) -> 'Assertion':
        """Alias of ``size``."""
        return self.size(expected)

    def blank(self) -> 'Assertion':
        self.check(not self.value, '%s is {{not|}} empty', self.value)
        return self

    def an_array(self) -> 'Assertion':
        kind = classify(self.value)
        result = kind in (ValueKind.SEQUENCE, ValueKind.MAPPING)
        self.check(result, '%s is {{not|}} an array', self.value)
        return self

    def traversable(self) -> 'Assertion':
        result = isinstance(self.value, Iterable) and classify(self.value) is not ValueKind.TEXT
        self.check(result, '%s is {{not|}} traversable', self.value)
        return self

    def an_instance_of(self, cls: type) -> 'Assertion':
        self.check(isinstance(self.value, cls), '%s is {{not|}} an instance of %s', self.value, cls)
        return self

    def implement(self, interface: type) -> 'Assertion':
        """Assert that the value (a class, or an instance's class) subclasses ``interface``."""
        cls = self.value if isinstance(self.value, type) else type(self.value)
        self.check(issubclass(cls, interface),
                   'Class %s {{does not implement|implements}} interface %s', cls, interface)
        return self

    def contain(self, item: Any) -> 'Assertion':
        try:
            result = item in self.value
        except TypeError:
            result = False
        self.check(result, '%s {{does not contain|contains}} %s', self.value, item)
        return self

    def match(self, pattern: str) -> 'Assertion':
        result = isinstance(self.value, str) and re.search(pattern, self.value) is not None
        self.check(result, '%s {{does not match|matches}} the regular expression %s', self.value, pattern)
        return self


def _text_size(assertion: Assertion, expected: int):
    assertion.check(len(assertion.value) == expected,
                    '%s {{does not have|has}} a string length of %s', assertion.value, expected)


def _integer_size(assertion: Assertion, expected: int):
    assertion.check(assertion.value == expected,
                    'Integer %s {{does not have|has}} a size of %s', assertion.value, expected)


def _collection_size(assertion: Assertion, expected: int):
    assertion.check(len(assertion.value) == expected,
                    'Array {{does not have|has}} a size of %s', expected)


_SIZE_HANDLERS: Dict[ValueKind, Callable[[Assertion, int], None]] = {
    ValueKind.TEXT: _text_size,
    ValueKind.INTEGER: _integer_size,
    ValueKind.SEQUENCE: _collection_size,
    ValueKind.MAPPING: _collection_size,
}
