"""
utils.py — input parsing helpers.
"""


def convert_arabic_digits(text: str) -> str:
    """
    Convert Arabic-Indic numerals (٠-٩, ۰-۹) to 0-9.

    Args:
        text: Input string

    Returns:
        String with converted digits
    """
    trans = str.maketrans("٠١٢٣٤٥٦٧٨٩۰۱۲۳۴۵۶۷۸۹", "01234567890123456789")
    return text.translate(trans)


def safe_int(text: str, default=None) -> int:
    """
    Safely parse integer from user input, handling Arabic digits.

    Args:
        text: User input string
        default: Default value if parsing fails

    Returns:
        Integer value or default
    """
    try:
        return int(convert_arabic_digits(str(text).strip()))
    except (ValueError, TypeError):
        return default


def safe_float(text: str, default=None) -> float:
    try:
        return float(convert_arabic_digits(str(text).strip()))
    except (ValueError, TypeError):
        return default
