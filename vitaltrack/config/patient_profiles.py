"""
Patient Record Definitions
===========================
Schema for the patient directory and the nested medical history served by
the listing endpoint. The simulation only reads id + is_pregnant.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional


@dataclass
class Medication:
    drug_name: str        # e.g. "Metformin"
    dosage: str           # e.g. "500mg BID"


@dataclass
class Condition:
    diagnosis: str        # e.g. "Type 2 Diabetes"
    notes: str = ""


@dataclass
class Surgery:
    procedure_name: str   # e.g. "Appendectomy"
    year: str             # e.g. "2015"
    complications: str = "None"


@dataclass
class PatientRecord:
    """Complete patient record with demographics and medical history."""

    # --- Core metadata ---
    patient_id: int
    name: str
    is_pregnant: bool = False

    # --- Personal details ---
    date_of_birth: Optional[date] = None
    mobile: str = ""
    address: str = ""
    admission_date: Optional[date] = None
    blood_type: str = ""
    doctor_name: Optional[str] = None

    # --- Clinical history ---
    medications: list = field(default_factory=list)
    conditions: list = field(default_factory=list)
    surgeries: list = field(default_factory=list)
    family_history: str = ""
    social_history: str = ""

    def to_dict(self) -> dict:
        """Serialize for the patient listing endpoint."""
        return {
            "patientId": self.patient_id,
            "name": self.name,
            "isPregnant": self.is_pregnant,
            "admissionDate": self.admission_date.isoformat() if self.admission_date else None,
            "dateOfBirth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "mobile": self.mobile,
            "address": self.address,
            "bloodType": self.blood_type,
            "familyHistory": self.family_history,
            "doctorName": self.doctor_name or "Unassigned",
            "medications": [{"drugName": m.drug_name, "dosage": m.dosage} for m in self.medications],
            "conditions": [{"diagnosis": c.diagnosis} for c in self.conditions],
            "surgeries": [{"procedureName": s.procedure_name, "year": s.year} for s in self.surgeries],
        }
