"""Tests for the typed exception hierarchy."""

import pytest

from inventory_kernel import exceptions as exc


ALL_ERROR_CLASSES = [
    obj
    for obj in vars(exc).values()
    if isinstance(obj, type) and issubclass(obj, exc.InventoryKernelError)
]


class TestErrorCodes:
    def test_every_class_has_its_own_code(self):
        codes = [cls.code for cls in set(ALL_ERROR_CLASSES)]
        assert len(codes) == len(set(codes))

    @pytest.mark.parametrize("cls", sorted(set(ALL_ERROR_CLASSES), key=lambda c: c.__name__))
    def test_code_is_upper_snake_case(self, cls):
        assert cls.code == cls.code.upper()
        assert " " not in cls.code

    def test_not_found_alias(self):
        assert exc.NotFoundError is exc.ItemNotFoundError


class TestStructuredData:
    def test_insufficient_stock_fields(self):
        error = exc.InsufficientStockError("SKU001", 60, 50)
        assert (error.sku, error.requested, error.available) == ("SKU001", 60, 50)
        assert isinstance(error, exc.QuantityError)
        assert "SKU001" in str(error)

    def test_invalid_snapshot_keeps_all_problems(self):
        problems = [f"problem {i}" for i in range(8)]
        error = exc.InvalidSnapshotError(problems)
        assert error.problems == problems
        assert "8 problem(s)" in str(error)
        assert "3 more" in str(error)

    def test_item_not_found_is_item_error(self):
        with pytest.raises(exc.ItemError):
            raise exc.ItemNotFoundError("SKU404")
