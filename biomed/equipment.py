"""Equipment class for the equipment catalog."""

from typing import Optional

# Fields that stay editable once a maintenance record references the equipment.
METADATA_FIELDS = ("notes",)


class Equipment:
    """A catalog entry: equipment name and model number."""

    def __init__(self, id: str, name: str, model_number: str, notes: Optional[str] = None):
        self.id = id
        self.name = name
        self.model_number = model_number
        self.notes = notes

    @property
    def display_name(self) -> str:
        """Human-readable equipment name."""
        return f"{self.name} - {self.model_number}" if self.model_number else self.name
