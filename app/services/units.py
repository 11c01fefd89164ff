"""
Weight unit helpers.

Weights are stored in kilograms. Conversion happens once, when a log is
written; rounding is left to presentation.
"""

from typing import Optional

LBS_TO_KG = 0.453592
KG_TO_LBS = 2.20462

SUPPORTED_UNITS = ("kg", "lbs")


def to_canonical(weight: float, unit: str) -> float:
    """Convert an entered weight to kilograms. Range checks belong to the caller."""
    if unit == "kg":
        return weight
    if unit == "lbs":
        return weight * LBS_TO_KG
    raise ValueError(f"Unsupported weight unit '{unit}'. Must be one of: {SUPPORTED_UNITS}")


def convert_weight(weight: float, from_unit: str, to_unit: str) -> float:
    if from_unit == to_unit:
        return weight

    if from_unit == "kg" and to_unit == "lbs":
        return weight * KG_TO_LBS
    if from_unit == "lbs" and to_unit == "kg":
        return weight / KG_TO_LBS

    raise ValueError(f"Cannot convert from {from_unit} to {to_unit}")


def format_weight(weight: float, unit: str = "kg") -> str:
    return f"{weight:.1f} {unit}"


def format_weight_loss(weight_loss: Optional[float], unit: str = "kg") -> str:
    """Display a signed delta; a negative loss is shown as a '+' gain."""
    if weight_loss is None:
        return "--"
    if weight_loss < 0:
        return f"+{abs(weight_loss):.1f} {unit}"
    return f"{weight_loss:.1f} {unit}"
