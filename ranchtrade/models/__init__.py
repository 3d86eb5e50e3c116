from ranchtrade.models.components import (
    TRAITS,
    Bufficorn,
    Player,
    Ranch,
    Resource,
    Trade,
    Trait,
)

__all__ = [
    "TRAITS",
    "Bufficorn",
    "Player",
    "Ranch",
    "Resource",
    "Trade",
    "Trait",
]
