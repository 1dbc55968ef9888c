import datetime
import random
import re

REFERENCE_PATTERN = re.compile(r"^LC-\d{4}-\d{5}$")


def generate_reference(now: datetime.datetime = None) -> str:
    """Returns ``LC-<year>-<5 random digits>``; uniqueness is enforced by the store."""
    year = (now or datetime.datetime.now(datetime.UTC)).year
    return f"LC-{year}-{random.randint(10000, 99999)}"
