"""Randomised, collision-resistant data for users and dishes.

Values that must stay unique across parallel CI shards (emails, phones, dish
names) combine a millisecond timestamp, a random token and, in CI, the run id.
"""
from __future__ import annotations

import random
import secrets
import string
import time
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, List, Optional

from nutriapp_tests.config import settings

EMAIL_DOMAIN = "nutriapp.com"

FIRST_NAMES = ["Ana", "Luis", "Maria", "Carlos", "Sofia", "Diego", "Lucia", "Mateo"]
LAST_NAMES = ["Garcia", "Lopez", "Martinez", "Hernandez", "Perez", "Sanchez", "Ramirez"]
NATIONALITIES = ["Mexican", "Spanish", "Colombian", "Argentinian", "Chilean", "Peruvian"]
DISH_NAMES = ["Pasta", "Salad", "Soup", "Tacos", "Risotto", "Curry", "Stew", "Bowl"]


def _timestamp_ms() -> int:
    return time.time_ns() // 1_000_000


def generate_unique_id(length: int = 6) -> str:
    """Lower-case alphanumeric token."""
    alphabet = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def unique_name(prefix: str = "CI Test") -> str:
    return f"{prefix} {_timestamp_ms()}-{generate_unique_id()}"


@dataclass(frozen=True)
class TestIdentity:
    """Credentials and profile of a user created by the suite."""

    __test__ = False  # not a pytest test class

    first_name: str
    last_name: str
    email: str
    nationality: str
    phone: str
    password: str

    def to_payload(self) -> Dict[str, str]:
        return {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "nationality": self.nationality,
            "phone": self.phone,
            "password": self.password,
        }

    def credentials(self) -> Dict[str, str]:
        return {"email": self.email, "password": self.password}


@dataclass
class DishFixture:
    name: str
    description: str
    quick_prep: bool = False
    prep_time: Optional[int] = None
    cook_time: Optional[int] = None
    image_url: str = ""
    steps: List[str] = field(default_factory=list)
    calories: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "quickPrep": self.quick_prep,
            "prepTime": self.prep_time,
            "cookTime": self.cook_time,
            "steps": list(self.steps),
        }
        if self.image_url:
            payload["imageUrl"] = self.image_url
        if self.calories is not None:
            payload["calories"] = self.calories
        return payload

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def generate_user_fixture(prefix: str = "test", run_id: Optional[str] = None) -> TestIdentity:
    """Build a user whose email and phone are unique across concurrent runs."""
    run_id = run_id if run_id is not None else settings.run_id
    timestamp = _timestamp_ms()
    token = generate_unique_id()

    local_part = f"{prefix}-{timestamp}-{token}"
    if run_id:
        local_part += f"-run{run_id}"

    # Last 7 digits of the timestamp plus 3 random digits.
    phone = f"{timestamp % 10_000_000:07d}{secrets.randbelow(1000):03d}"

    return TestIdentity(
        first_name=random.choice(FIRST_NAMES),
        last_name=random.choice(LAST_NAMES),
        email=f"{local_part}@{EMAIL_DOMAIN}",
        nationality=random.choice(NATIONALITIES),
        phone=phone,
        password=f"Test{secrets.token_hex(4)}!9",
    )


def generate_dish_fixture(**overrides: Any) -> DishFixture:
    """Build a dish with randomised times and calories.

    ``quick_prep`` is an independent coin flip so both presentation modes of
    the list get exercised regardless of the time fields.
    """
    base = random.choice(DISH_NAMES)
    name = f"Test {base} {_timestamp_ms()}-{generate_unique_id()}"
    dish = DishFixture(
        name=name,
        description=f"Description for {name}",
        quick_prep=random.random() < 0.5,
        prep_time=random.randint(5, 35),
        cook_time=random.randint(10, 70),
        image_url="",
        steps=[
            "Step 1: Prepare ingredients",
            "Step 2: Cook the dish",
            "Step 3: Serve",
        ],
        calories=random.randint(100, 600),
    )
    return replace(dish, **overrides) if overrides else dish
