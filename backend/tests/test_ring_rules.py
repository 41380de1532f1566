"""Ring configuration rules: 1-10 rings, unique numbers, unique colors."""
from flyball.utils.rings import validate_ring_configuration


def test_valid_configuration():
    assert validate_ring_configuration([(1, "Red"), (2, "Blue")]) is None


def test_ring_count_bounds():
    assert validate_ring_configuration([]) == "Tournament must have between 1 and 10 rings"
    eleven = [(n, f"Color {n}") for n in range(1, 12)]
    assert validate_ring_configuration(eleven) == "Tournament must have between 1 and 10 rings"
    ten = [(n, f"Color {n}") for n in range(1, 11)]
    assert validate_ring_configuration(ten) is None


def test_duplicate_colors_case_insensitive():
    assert validate_ring_configuration([(1, "Red"), (2, " red ")]) == "Ring colors must be unique"


def test_blank_color():
    assert validate_ring_configuration([(1, "  ")]) == "Ring colors must not be empty"


def test_ring_number_range():
    assert validate_ring_configuration([(0, "Red")]) == "Ring numbers must be between 1 and 10"
    assert validate_ring_configuration([(11, "Red")]) == "Ring numbers must be between 1 and 10"


def test_duplicate_ring_numbers():
    assert validate_ring_configuration([(2, "Red"), (2, "Blue")]) == "Ring numbers must be unique"
