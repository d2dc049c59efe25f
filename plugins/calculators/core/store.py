"""File-backed registry of calculator definitions."""

from __future__ import annotations

import json
import os
import threading
from dataclasses import replace
from pathlib import Path

from common.logging import get_logger

from .documents import (
    CalculatorImportError,
    calculator_from_data,
    dump_documents,
    import_many,
    utc_now,
)
from .models import Calculator

logger = get_logger("formulaforge.calculators")


class DuplicateCalculatorError(ValueError):
    """Raised when adding a calculator whose id is already stored."""


class CalculatorNotFoundError(KeyError):
    """Raised when no stored calculator has the requested id."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Calculator not found"


class CalculatorStore:
    """Thread-safe list of calculators persisted as a JSON array.

    ``path=None`` keeps everything in memory. Nothing touches disk until
    :meth:`load` or :meth:`save` is called explicitly; mutating methods save
    when the store has a path.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._items: list[Calculator] = []
        self._lock = threading.Lock()

    def load(self) -> list[Calculator]:
        if self.path is None or not self.path.exists():
            with self._lock:
                return list(self._items)
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise CalculatorImportError(f"Calculator store {self.path} is not valid JSON") from exc
        if not isinstance(data, list):
            raise CalculatorImportError(f"Calculator store {self.path} must contain a JSON array")
        # Stored definitions were validated when they were saved.
        loaded = [calculator_from_data(item, validate=False) for item in data]
        with self._lock:
            self._items = loaded
        logger.info("Loaded %d calculator(s) from %s", len(loaded), self.path)
        return list(loaded)

    def _write(self, items: list[Calculator]) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            tmp_path.write_text(dump_documents(items), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.info("Saved %d calculator(s) to %s", len(items), self.path)

    def _commit_locked(self, items: list[Calculator]) -> None:
        # Memory only changes once the file write has succeeded.
        self._write(items)
        self._items = items

    def save(self) -> None:
        with self._lock:
            self._write(self._items)

    def list(self) -> list[Calculator]:
        with self._lock:
            return list(self._items)

    def get(self, calculator_id: str) -> Calculator:
        with self._lock:
            for item in self._items:
                if item.id == calculator_id:
                    return item
        raise CalculatorNotFoundError(f"Calculator '{calculator_id}' not found")

    def add(self, calculator: Calculator) -> Calculator:
        now = utc_now()
        stored = replace(
            calculator,
            created_at=calculator.created_at or now,
            updated_at=calculator.updated_at or now,
        )
        with self._lock:
            if any(item.id == stored.id for item in self._items):
                raise DuplicateCalculatorError(f"Calculator '{stored.id}' already exists")
            self._commit_locked([*self._items, stored])
        return stored

    def update(self, calculator: Calculator) -> Calculator:
        with self._lock:
            for index, item in enumerate(self._items):
                if item.id == calculator.id:
                    stored = replace(calculator, created_at=item.created_at, updated_at=utc_now())
                    items = list(self._items)
                    items[index] = stored
                    self._commit_locked(items)
                    return stored
        raise CalculatorNotFoundError(f"Calculator '{calculator.id}' not found")

    def delete(self, calculator_id: str) -> None:
        with self._lock:
            remaining = [item for item in self._items if item.id != calculator_id]
            if len(remaining) == len(self._items):
                raise CalculatorNotFoundError(f"Calculator '{calculator_id}' not found")
            self._commit_locked(remaining)

    def search(self, query: str) -> list[Calculator]:
        needle = query.strip().lower()
        if not needle:
            return self.list()
        return [
            item
            for item in self.list()
            if needle in item.title.lower()
            or needle in item.description.lower()
            or (item.category is not None and needle in item.category.lower())
        ]

    def filter_by_category(self, category: str) -> list[Calculator]:
        return [item for item in self.list() if item.category == category]

    def categories(self) -> list[str]:
        return sorted({item.category for item in self.list() if item.category})

    def export_all(self) -> str:
        return dump_documents(self.list())

    def import_documents(self, text: str) -> list[Calculator]:
        """Add every calculator in ``text``; nothing is added if any fails."""

        calculators = import_many(text)
        now = utc_now()
        with self._lock:
            existing = {item.id for item in self._items}
            incoming: set[str] = set()
            for calculator in calculators:
                if calculator.id in existing or calculator.id in incoming:
                    raise DuplicateCalculatorError(f"Calculator '{calculator.id}' already exists")
                incoming.add(calculator.id)
            stored = [
                replace(item, created_at=item.created_at or now, updated_at=item.updated_at or now)
                for item in calculators
            ]
            self._commit_locked([*self._items, *stored])
        return stored


__all__ = ["CalculatorNotFoundError", "CalculatorStore", "DuplicateCalculatorError"]
