# --- src/nodal_core/units.py ---
"""
Unit handling for element values.

Element values may be given as plain numbers (implicitly SI: ohm, ampere, volt),
as SymPy expressions or expression strings, or as `pint.Quantity` objects. Quantities
are checked against the expected physical dimension and reduced to their SI magnitude
before they enter the equation system, which is unit-free.
"""
import logging
from fractions import Fraction
from tokenize import TokenError
from typing import Union

import pint
import sympy

from .expressions import parse_control_expression

logger = logging.getLogger(__name__)
ureg = pint.UnitRegistry()
Quantity = ureg.Quantity
logger.debug("Pint Unit Registry initialized.")

# --- Canonical dimensionality objects for explicit checks ---
RESISTANCE_DIMENSIONALITY = ureg.parse_expression('ohm').dimensionality
CURRENT_DIMENSIONALITY = ureg.parse_expression('ampere').dimensionality
VOLTAGE_DIMENSIONALITY = ureg.parse_expression('volt').dimensionality

#: SI unit each element parameter is expressed in once it reaches the equation system.
SI_UNITS = {
    "ohm": ureg.ohm,
    "ampere": ureg.ampere,
    "volt": ureg.volt,
}

ElementValue = Union[int, float, Fraction, str, sympy.Expr, Quantity]


class UnitConversionError(ValueError):
    """Raised when an element value cannot be interpreted in the expected unit."""
    pass


def _magnitude_to_sympy(magnitude) -> sympy.Expr:
    if isinstance(magnitude, bool):
        raise UnitConversionError(f"Boolean value '{magnitude}' is not a valid element value.")
    if isinstance(magnitude, int):
        return sympy.Integer(magnitude)
    if isinstance(magnitude, Fraction):
        return sympy.Rational(magnitude.numerator, magnitude.denominator)
    if isinstance(magnitude, float):
        return sympy.Float(magnitude)
    if isinstance(magnitude, sympy.Basic):
        return magnitude
    try:
        # numpy scalars and anything else SymPy knows how to read.
        return sympy.sympify(magnitude, strict=True)
    except (sympy.SympifyError, TypeError) as e:
        raise UnitConversionError(f"Cannot interpret '{magnitude}' as a numeric value: {e}") from e


def to_si_expression(value: ElementValue, si_unit: str) -> sympy.Expr:
    """
    Converts a user-supplied element value into a unit-free SymPy expression
    in the given SI unit.

    Args:
        value: The raw value (number, string expression, SymPy expression or Quantity).
        si_unit: One of the keys of `SI_UNITS` ("ohm", "ampere", "volt").

    Returns:
        A SymPy expression. Integers and fractions stay exact; floats become `sympy.Float`.

    Raises:
        UnitConversionError: If the value has the wrong dimension or cannot be parsed.
    """
    target = SI_UNITS[si_unit]

    if isinstance(value, pint.Quantity):
        try:
            converted = value.to(target)
        except pint.DimensionalityError as e:
            raise UnitConversionError(
                f"Value '{value}' has dimensionality {value.dimensionality}, "
                f"which cannot be converted to {si_unit}."
            ) from e
        magnitude = converted.magnitude
        # Keep integer quantities exact when no scaling happened.
        if isinstance(value.magnitude, (int, Fraction)) and value.units == target:
            magnitude = value.magnitude
        return _magnitude_to_sympy(magnitude)

    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise UnitConversionError("Empty string is not a valid element value.")
        try:
            parsed = parse_control_expression(text)
        except (SyntaxError, TokenError, TypeError, sympy.SympifyError):
            logger.debug(f"'{text}' is not a SymPy expression, retrying as a pint quantity.")
        else:
            if not isinstance(parsed, sympy.Expr):
                raise UnitConversionError(f"'{value}' is not an algebraic expression.")
            return parsed
        # Strings such as "4 ohm" or "2.5 kV" carry their unit inline.
        try:
            quantity = ureg.Quantity(text)
        except (pint.UndefinedUnitError, pint.DimensionalityError, SyntaxError, ValueError, TypeError) as e:
            raise UnitConversionError(f"Could not parse expression '{value}': {e}") from e
        if not isinstance(quantity, pint.Quantity):
            raise UnitConversionError(f"Could not parse expression '{value}'.")
        return to_si_expression(quantity, si_unit)

    return _magnitude_to_sympy(value)
