"""
Ruten Shoplist — Exception Taxonomy

ResolutionError subclasses mean a requested card cannot be resolved to
canonical metadata. RemoteFetchError means a marketplace call failed and
the affected product or shop contributes nothing for that step.
"""

from __future__ import annotations


class RutenShopError(Exception):
    """Base class for all Ruten Shoplist errors."""


class ResolutionError(RutenShopError):
    """Card metadata lookup failed for a requested item."""


class SchemaNotFoundError(ResolutionError):
    """No model is registered for the requested entity name."""

    def __init__(self, entity_name: str):
        self.entity_name = entity_name
        super().__init__(f"Schema not found for model: {entity_name}")


class CardNotFoundError(ResolutionError):
    """No card row matches the requested base id and rarity."""

    def __init__(self, card_id: str, rarity: str):
        self.card_id = card_id
        self.rarity = rarity
        super().__init__(f"Card data not found for {card_id} {rarity}")


class RemoteFetchError(RutenShopError):
    """A marketplace request failed (transport, status, timeout or payload)."""

    def __init__(self, message: str, api_type: str, subject: str):
        self.api_type = api_type
        self.subject = subject
        super().__init__(message)
