"""Customer class for hospitals owning serviced equipment."""
from typing import Optional


class Customer:
    """A hospital and its bio-medical department contacts."""

    def __init__(
            self,
            id: str,
            name: str,
            bio_medical_email: str,
            bio_medical_contact: str,
            bio_medical_hod_name: str,
            notes: Optional[str] = None,
    ):
        self.id = id
        self.name = name
        self.bio_medical_email = bio_medical_email
        self.bio_medical_contact = bio_medical_contact
        self.bio_medical_hod_name = bio_medical_hod_name
        self.notes = notes
