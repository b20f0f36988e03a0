"""Unified operation result returned by every public engine call.

Engines never raise past their public boundary. Callers (command / GUI layer)
inspect `success` and translate `code` into a user-facing message:

    result = await transfers.transfer(sender, receiver, Decimal("25"))
    if not result:
        reply(messages[result.code])
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict

from src.eco_common.errors import AppError

T = TypeVar("T")


class OperationResult(BaseModel, Generic[T]):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    success: bool
    code: int = 0  # 0=success, otherwise an AppError code
    message: str = "success"
    value: T | None = None

    def __bool__(self) -> bool:
        return self.success


def ok(value: Any = None) -> OperationResult[Any]:
    return OperationResult(success=True, value=value)


def fail(code: int, message: str) -> OperationResult[Any]:
    return OperationResult(success=False, code=code, message=message)


def from_error(exc: AppError) -> OperationResult[Any]:
    return fail(exc.code, exc.message)
