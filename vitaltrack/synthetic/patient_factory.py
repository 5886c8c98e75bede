"""
Patient Factory
================
Generates random but realistic patient records for seeding a demo ward.
Each patient gets a unique numeric ID, plausible demographics and history.
"""

import random
from datetime import date, timedelta
from typing import Optional

from vitaltrack.config.patient_profiles import Condition, Medication, PatientRecord, Surgery

# --- Name pools ---
FIRST_NAMES_M = [
    "James", "William", "Robert", "David", "Michael", "Thomas", "Daniel",
    "Andrew", "Ethan", "Lucas", "Noah", "Liam", "Benjamin", "Samuel",
]
FIRST_NAMES_F = [
    "Eleanor", "Maria", "Sarah", "Linda", "Emma", "Olivia", "Sophia",
    "Grace", "Hannah", "Ava", "Chloe", "Isabella", "Mia", "Charlotte",
]
LAST_NAMES = [
    "Mitchell", "Sullivan", "Gonzalez", "Chen", "Thompson", "Park",
    "Patel", "Kim", "Rodriguez", "Wright", "Nakamura", "Brown",
    "Lee", "Davis", "Wilson", "Martinez", "Clark", "Moore",
]

DOCTORS = ["Dr. Han", "Dr. Yoon", "Dr. Shin", "Dr. Kwon", "Dr. Seo",
           "Dr. Lim", "Dr. Cho", "Dr. Kang"]
STREETS = ["Maple Ave", "Oak St", "Cedar Rd", "Harbor Blvd", "Elm Ct", "Lakeview Dr"]
BLOOD_TYPES = ["O+", "O+", "A+", "A+", "B+", "AB+", "O-", "A-", "B-", "AB-"]

MEDICATIONS_POOL = [
    ("Metoprolol", "25mg PO BID"), ("Lisinopril", "10mg PO daily"),
    ("Metformin", "500mg PO BID"), ("Aspirin", "81mg PO daily"),
    ("Enoxaparin", "40mg SC daily"), ("Omeprazole", "40mg IV daily"),
    ("Acetaminophen", "1g IV q6h"), ("Insulin glargine", "20u SC QHS"),
    ("Prenatal vitamins", "1 tab PO daily"), ("Ondansetron", "4mg IV PRN"),
]
CONDITIONS_POOL = [
    "Type 2 Diabetes", "Hypertension", "Atrial Fibrillation", "Asthma",
    "COPD", "Chronic Kidney Disease", "Hypothyroidism", "Gestational Hypertension",
]
SURGERY_POOL = [
    ("Appendectomy", "2018"), ("Cholecystectomy", "2020"), ("Knee arthroscopy", "2019"),
    ("C-section", "2017"), ("Hernia repair", "2015"), ("Tonsillectomy", "1998"),
    ("Cataract surgery", "2022"),
]
FAMILY_HISTORY_POOL = [
    "No significant family history", "Father: MI at 58", "Mother: Type 2 Diabetes",
    "Sibling: Asthma", "Maternal grandmother: Breast cancer",
]


def generate_patient(patient_id: int,
                     force_pregnant: Optional[bool] = None,
                     rng: Optional[random.Random] = None) -> PatientRecord:
    """
    Create a single random patient record.

    Args:
        patient_id: Directory ID for the patient
        force_pregnant: Override the random pregnancy flag
        rng: Random source (module-level random if omitted)
    """
    rng = rng or random.Random()
    gender = rng.choice(["M", "F"])
    if force_pregnant:
        gender = "F"
    first = rng.choice(FIRST_NAMES_M if gender == "M" else FIRST_NAMES_F)
    name = f"{first} {rng.choice(LAST_NAMES)}"

    if force_pregnant is None:
        is_pregnant = gender == "F" and rng.random() < 0.25
    else:
        is_pregnant = force_pregnant

    # Pregnant patients skew young
    age = rng.randint(22, 40) if is_pregnant else rng.randint(25, 89)
    today = date.today()
    dob = today - timedelta(days=age * 365 + rng.randint(0, 364))

    conditions = [Condition(d) for d in rng.sample(CONDITIONS_POOL, k=rng.randint(0, 2))]
    if is_pregnant:
        conditions.append(Condition("Pregnancy", notes=f"{rng.randint(20, 39)} weeks"))

    return PatientRecord(
        patient_id=patient_id,
        name=name,
        is_pregnant=is_pregnant,
        date_of_birth=dob,
        mobile=f"555-{rng.randint(100, 999)}-{rng.randint(1000, 9999)}",
        address=f"{rng.randint(10, 999)} {rng.choice(STREETS)}",
        admission_date=today - timedelta(days=rng.randint(0, 10)),
        blood_type=rng.choice(BLOOD_TYPES),
        doctor_name=rng.choice(DOCTORS),
        medications=[Medication(n, d) for n, d in rng.sample(MEDICATIONS_POOL, k=rng.randint(1, 4))],
        conditions=conditions,
        surgeries=[Surgery(p, y) for p, y in rng.sample(SURGERY_POOL, k=rng.randint(0, 2))],
        family_history=rng.choice(FAMILY_HISTORY_POOL),
    )


def generate_ward(n: int = 8, rng: Optional[random.Random] = None) -> list:
    """
    Generate a ward of n patients with IDs 1..n.
    Ensures at least one pregnant patient when n >= 2.
    """
    rng = rng or random.Random()
    patients = [generate_patient(pid, rng=rng) for pid in range(1, n + 1)]
    if n >= 2 and not any(p.is_pregnant for p in patients):
        patients[-1] = generate_patient(n, force_pregnant=True, rng=rng)
    return patients


if __name__ == "__main__":
    for p in generate_ward(8):
        print(f"{p.patient_id:3d} | {p.name:22s} | {p.blood_type:3s} | "
              f"Pregnant={p.is_pregnant} | {p.doctor_name}")
