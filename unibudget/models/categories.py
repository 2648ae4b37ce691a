"""
Category Catalog

Transactions and budget limits reference categories by plain string.
A string may name a built-in category, a user-defined CustomCategory,
or nothing at all (renamed, deleted, typed by hand in a CSV file).

Resolution is a lookup that always succeeds: the result is one of three
variants (builtin, custom, unknown), distinguished by ``kind``.
"""

from enum import Enum
from typing import Iterable, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_CUSTOM_COLOR = "#A0AEC0"
UNKNOWN_CATEGORY_COLOR = "#D4D4D4"


class BuiltinCategory(str, Enum):
    """Fixed categories shipped with the app."""
    FOOD = "Food"
    TRANSPORT = "Transport"
    BOOKS = "Books"
    ENTERTAINMENT = "Fun"
    BILLS = "Bills"
    OTHER = "Other"
    FEES = "Fees"
    SCHOLARSHIP = "Scholarship"
    ALLOWANCE = "Allowance"

    @property
    def color(self) -> str:
        return _BUILTIN_COLORS[self]

    @property
    def icon_key(self) -> str:
        return _BUILTIN_ICONS[self]


_BUILTIN_COLORS = {
    BuiltinCategory.FOOD: "#FF6B6B",
    BuiltinCategory.TRANSPORT: "#4ECDC4",
    BuiltinCategory.BOOKS: "#45B7D1",
    BuiltinCategory.ENTERTAINMENT: "#96CEB4",
    BuiltinCategory.BILLS: "#FFEEAD",
    BuiltinCategory.OTHER: "#D4D4D4",
    BuiltinCategory.FEES: "#FF9F43",
    BuiltinCategory.SCHOLARSHIP: "#10B981",
    BuiltinCategory.ALLOWANCE: "#3B82F6",
}

_BUILTIN_ICONS = {
    BuiltinCategory.FOOD: "utensils",
    BuiltinCategory.TRANSPORT: "bus",
    BuiltinCategory.BOOKS: "book-open",
    BuiltinCategory.ENTERTAINMENT: "party-popper",
    BuiltinCategory.BILLS: "receipt",
    BuiltinCategory.OTHER: "more-horizontal",
    BuiltinCategory.FEES: "circle-dollar-sign",
    BuiltinCategory.SCHOLARSHIP: "graduation-cap",
    BuiltinCategory.ALLOWANCE: "wallet",
}


class CustomIcon(str, Enum):
    """Icons a user can pick for a custom category."""
    STAR = "Star"
    HEART = "Heart"
    MUSIC = "Music"
    SHOPPING = "Shopping"
    WORK = "Work"
    GIFT = "Gift"
    COFFEE = "Coffee"
    PHONE = "Phone"
    HOME = "Home"
    OTHER = "Other"


class CustomCategory(BaseModel):
    """
    A user-defined category.

    Append-only: once created it persists until a full reset.
    Names are unique in practice but the store does not enforce it.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique category ID"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=60,
        description="Display name, referenced by Transaction.category"
    )
    icon_key: CustomIcon = Field(
        default=CustomIcon.STAR,
        description="Key into the custom icon catalog"
    )
    color: str = Field(
        default=DEFAULT_CUSTOM_COLOR,
        description="Display colour"
    )


# =============================================================================
# RESOLUTION VARIANTS
# =============================================================================

class BuiltinCategoryInfo(BaseModel):
    kind: Literal["builtin"] = "builtin"
    category: BuiltinCategory

    @property
    def name(self) -> str:
        return self.category.value

    @property
    def color(self) -> str:
        return self.category.color

    @property
    def icon_key(self) -> str:
        return self.category.icon_key


class CustomCategoryInfo(BaseModel):
    kind: Literal["custom"] = "custom"
    category: CustomCategory

    @property
    def name(self) -> str:
        return self.category.name

    @property
    def color(self) -> str:
        return self.category.color

    @property
    def icon_key(self) -> str:
        return self.category.icon_key.value


class UnknownCategoryInfo(BaseModel):
    """A category string that matches nothing in the catalog."""
    kind: Literal["unknown"] = "unknown"
    name: str
    color: str = UNKNOWN_CATEGORY_COLOR
    icon_key: str = CustomIcon.OTHER.value


CategoryInfo = Union[BuiltinCategoryInfo, CustomCategoryInfo, UnknownCategoryInfo]


def builtin_category(name: str) -> Optional[BuiltinCategory]:
    """Return the built-in category with this exact value, if any."""
    try:
        return BuiltinCategory(name)
    except ValueError:
        return None


def resolve_category(
    name: str,
    custom_categories: Iterable[CustomCategory] = (),
) -> CategoryInfo:
    """
    Look up a category string.

    Built-ins win over custom categories of the same name; among custom
    categories the first match wins.
    """
    builtin = builtin_category(name)
    if builtin is not None:
        return BuiltinCategoryInfo(category=builtin)

    for custom in custom_categories:
        if custom.name == name:
            return CustomCategoryInfo(category=custom)

    return UnknownCategoryInfo(name=name)


def all_category_names(custom_categories: Iterable[CustomCategory] = ()) -> list[str]:
    """Built-in names first, then custom names in the order given."""
    names = [c.value for c in BuiltinCategory]
    names.extend(c.name for c in custom_categories)
    return names
