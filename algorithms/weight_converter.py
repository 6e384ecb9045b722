class WeightConverter:
    """Utility for converting between kg and lb."""

    KG_TO_LB = 2.2046226218
    UNITS = ("kg", "lb")

    @staticmethod
    def kg_to_lb(kg: float) -> float:
        return round(kg * WeightConverter.KG_TO_LB, 2)

    @staticmethod
    def lb_to_kg(lb: float) -> float:
        return round(lb / WeightConverter.KG_TO_LB, 2)

    @staticmethod
    def factor(unit: str) -> float:
        if unit == "kg":
            return 1.0
        if unit == "lb":
            return WeightConverter.KG_TO_LB
        raise ValueError(f"unknown weight unit: {unit}")

    @staticmethod
    def display_value(kg: float, unit: str = "kg") -> float:
        """Convert a stored kilogram value into ``unit`` without rounding."""
        return kg * WeightConverter.factor(unit)
