import datetime
import decimal
import enum
import uuid

import pytest
from sequelocity.coercion import coerce, default_value, is_nullable
from sequelocity.coercion import is_scalar_type, to_enum, unwrap_optional
from sequelocity.exceptions import CoercionError


class Color(enum.Enum):
    Red = 1
    Green = 2


class Level(enum.IntEnum):
    Zero = 0
    One = 1


class TestUnwrapOptional:

    def test_plain_type(self):
        assert unwrap_optional(int) == (int, False)

    def test_pipe_optional(self):
        assert unwrap_optional(int | None) == (int, True)

    def test_nullable(self):
        assert is_nullable(str | None)
        assert not is_nullable(str)


class TestDefaultValue:

    @pytest.mark.parametrize(('target', 'expected'), [
        (int, 0),
        (float, 0.0),
        (bool, False),
        (decimal.Decimal, decimal.Decimal(0)),
        (str, None),
        (datetime.date, None),
        (int | None, None),
    ])
    def test_zero_or_none(self, target, expected):
        assert default_value(target) == expected

    def test_enum_zero_member(self):
        assert default_value(Level) is Level.Zero

    def test_enum_without_zero_member(self):
        assert default_value(Color) is None


class TestCoerce:

    def test_null_becomes_zero_for_numeric(self):
        assert coerce(None, int) == 0
        assert coerce(None, float) == 0.0

    def test_null_stays_none_for_nullable(self):
        assert coerce(None, int | None) is None

    def test_numeric_text(self):
        assert coerce('42', int) == 42
        assert coerce(' 2.5 ', float) == 2.5

    def test_integral_float_to_int(self):
        assert coerce(3.0, int) == 3

    def test_fractional_float_to_int_fails(self):
        with pytest.raises(CoercionError) as exc:
            coerce(3.5, int, 'Score')
        assert exc.value.column == 'Score'
        assert exc.value.value == 3.5

    def test_bool_from_int_and_text(self):
        assert coerce(1, bool) is True
        assert coerce('no', bool) is False

    def test_bool_from_unknown_text_fails(self):
        with pytest.raises(CoercionError):
            coerce('maybe', bool)

    def test_decimal_from_float_keeps_digits(self):
        assert coerce(0.1, decimal.Decimal) == decimal.Decimal('0.1')

    def test_date_from_iso_text(self):
        assert coerce('1938-06-18', datetime.date) == datetime.date(1938, 6, 18)

    def test_date_from_free_form_text(self):
        assert coerce('June 18, 1938', datetime.date) == datetime.date(1938, 6, 18)
        assert coerce('1938-06-18 10:30', datetime.datetime) == datetime.datetime(1938, 6, 18, 10, 30)

    @pytest.mark.parametrize('text', ['5', 'June', '10:30'])
    def test_partial_date_text_fails(self, text):
        with pytest.raises(CoercionError):
            coerce(text, datetime.date)
        with pytest.raises(CoercionError):
            coerce(text, datetime.datetime)

    def test_datetime_from_date(self):
        assert coerce(datetime.date(1938, 6, 18), datetime.datetime) == datetime.datetime(1938, 6, 18)

    def test_uuid_from_text(self):
        value = uuid.uuid4()
        assert coerce(str(value), uuid.UUID) == value

    def test_str_from_bytes(self):
        assert coerce(b'Clark', str) == 'Clark'

    def test_passthrough_for_any(self):
        marker = object()
        assert coerce(marker, object) is marker

    def test_unconvertible_value(self):
        with pytest.raises(CoercionError):
            coerce(object(), int)

    def test_coercion_error_is_type_error(self):
        with pytest.raises(TypeError):
            coerce('abc', int)


class TestEnums:

    def test_by_name(self):
        assert to_enum('Red', Color) is Color.Red

    def test_by_name_case_insensitive(self):
        assert to_enum('green', Color) is Color.Green

    def test_by_value(self):
        assert to_enum(2, Color) is Color.Green

    def test_by_numeric_text(self):
        assert to_enum('1', Color) is Color.Red

    def test_unknown(self):
        with pytest.raises(CoercionError):
            to_enum('Blue', Color)

    def test_coerce_dispatches_to_enum(self):
        assert coerce(1, Level) is Level.One


def test_scalar_types():
    assert is_scalar_type(int)
    assert is_scalar_type(str | None)
    assert is_scalar_type(Color)
    assert is_scalar_type(datetime.date)
    assert not is_scalar_type(TestCoerce)
