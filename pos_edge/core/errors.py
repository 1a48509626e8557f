# pos_edge/core/errors.py
"""Error taxonomy for the commit engine, the receipt encoder and printing.

Commit-time errors abort the whole unit of work; nothing they describe ever
reaches durable storage. Printing errors happen strictly after a sale is
committed and never touch sale data.
"""
from typing import Any, Dict


class PosError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "error_type": type(self).__name__}


class CommitError(PosError):
    """Base for everything that can make a commit fail."""

    retryable = False

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["retryable"] = self.retryable
        return data


class ValidationError(CommitError):
    """Empty cart, bad quantity/price/discount, unknown or inactive product."""

    status_code = 400


class InsufficientStock(CommitError):
    status_code = 409

    def __init__(self, product_id: str, required: int, available: int, name: str | None = None):
        label = name or product_id
        super().__init__(
            f"Insufficient stock for product {label}. Required: {required}, Available: {available}"
        )
        self.product_id = product_id
        self.required = required
        self.available = available

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(product_id=self.product_id, required=self.required, available=self.available)
        return data


class StockRaceLost(CommitError):
    """The conditional decrement matched no row: stock moved after the advisory check."""

    status_code = 409
    retryable = True

    def __init__(self, product_id: str):
        super().__init__(f"Stock for product {product_id} changed during checkout, please retry")
        self.product_id = product_id

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["product_id"] = self.product_id
        return data


class PersistenceFailure(CommitError):
    status_code = 503
    retryable = True


class EncodingError(PosError):
    """A receipt document could not be rendered. Indicates a bug, not bad input."""

    status_code = 500


class TransportFailure(PosError):
    """The printer could not be reached or rejected the job."""

    status_code = 502

    def __init__(self, message: str, printer_id: str | None = None):
        super().__init__(message)
        self.printer_id = printer_id

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["printer"] = self.printer_id
        return data
