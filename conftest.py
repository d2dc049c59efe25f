import pytest

from plugins.calculators.core import Calculator, InputField, OutputField


@pytest.fixture
def ohms_law() -> Calculator:
    return Calculator(
        id="ohms-law",
        title="Ohm's Law",
        description="Resistance and power from voltage and current.",
        category="Electronics",
        inputs=(
            InputField(id="v", label="Voltage", symbol="V", unit="V", min=0),
            InputField(id="i", label="Current", symbol="I", unit="A", min=0, max=100),
        ),
        outputs=(
            OutputField(id="resistance", label="Resistance", symbol="R", unit="Ω", formula="v/i"),
            OutputField(id="power", label="Power", symbol="P", unit="W", formula="v*i"),
            OutputField(id="doublePower", label="Double power", symbol="P_2", unit="W", formula="power*2"),
        ),
    )
