"""Custom exceptions for emissions quantification and uncertainty propagation."""

from typing import Optional


class EmissionsEngineError(Exception):
    """Base exception for per-record engine errors."""

    error_code = "ENGINE_ERROR"


class RegistryLoadError(EmissionsEngineError):
    """Raised when an emission factor dataset cannot be loaded or is inconsistent."""

    error_code = "REGISTRY_LOAD_ERROR"


class FactorNotFoundError(EmissionsEngineError):
    """Raised when a (category, subcategory, method) triple has no factor."""

    error_code = "FACTOR_NOT_FOUND"

    def __init__(
        self,
        category_id: str,
        subcategory_id: Optional[str] = None,
        method: Optional[str] = None,
    ):
        self.category_id = category_id
        self.subcategory_id = subcategory_id
        self.method = method
        message = f"No emission factor for category '{category_id}'"
        if subcategory_id:
            message += f", subcategory '{subcategory_id}'"
        if method:
            message += f", method '{method}'"
        super().__init__(message)


class UnitMismatchError(EmissionsEngineError):
    """Raised when a currency amount does not match the factor's monetary unit."""

    error_code = "UNIT_MISMATCH"

    def __init__(self, unit: str, expected_unit: str):
        self.unit = unit
        self.expected_unit = expected_unit
        super().__init__(
            f"Unit '{unit}' does not match the factor unit '{expected_unit}'"
        )


class UnsupportedUnitError(EmissionsEngineError):
    """Raised when a unit or unit pair has no known conversion."""

    error_code = "UNSUPPORTED_UNIT"

    def __init__(self, unit: str, target_unit: Optional[str] = None):
        self.unit = unit
        self.target_unit = target_unit
        message = f"Unsupported unit '{unit}'"
        if target_unit:
            message = f"No conversion from '{unit}' to '{target_unit}'"
        super().__init__(message)


class MethodUnavailableError(EmissionsEngineError):
    """Raised when no calculation method (or the requested one) is usable."""

    error_code = "METHOD_UNAVAILABLE"

    def __init__(self, category_id: str, subcategory_id: str, method: Optional[str] = None):
        self.category_id = category_id
        self.subcategory_id = subcategory_id
        self.method = method
        if method:
            message = (
                f"Method '{method}' is not available for "
                f"{category_id}/{subcategory_id}"
            )
        else:
            message = f"No calculation method available for {category_id}/{subcategory_id}"
        super().__init__(message)


class CalculationError(EmissionsEngineError):
    """Raised when a record cannot be quantified, even with a fallback factor."""

    error_code = "CALCULATION_ERROR"


class UncertaintyInputError(EmissionsEngineError):
    """Raised when negative or non-finite values reach the uncertainty engine."""

    error_code = "UNCERTAINTY_INPUT_ERROR"
