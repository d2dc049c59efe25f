"""Formula calculators plugin manifest."""

manifest = {
    "title": "Formula Calculators",
    "summary": "Define calculators from typed inputs and formulas, evaluate them live, and share them as JSON.",
    "category": "General Utilities",
    "blueprint": "calculators",
}

__all__ = ["manifest"]
