import random
from datetime import timedelta
from decimal import Decimal

from faker import Faker
from django.contrib.auth import get_user_model
from django.utils import timezone

from accounts.models import BLOOD_TYPES
from appointments import services as ledger
from appointments.slots import available_slots
from common.exceptions import ClinicError
from health_cards import services as cards

fake = Faker()
User = get_user_model()

# -----------------------------
# Fake data generation settings
# -----------------------------
DOCTOR_COUNT = 4
PATIENT_COUNT = 20
APPOINTMENTS_PER_PATIENT = 3
BOOKING_DAYS_AHEAD = 14
SPECIALIZATIONS = ["General Practice", "Cardiology", "Pediatrics", "Dermatology", "Orthopedics"]
ALLERGIES = ["Penicillin", "Peanuts", "Latex", "Pollen", "Aspirin", "Shellfish"]
PASSWORD = "password123"


def create_staff():
    # Create an admin and a front desk user
    users = []
    for username, role in [("admin", "admin"), ("frontdesk", "staff")]:
        if not User.objects.filter(username=username).exists():
            users.append(User.objects.create_user(
                username=username,
                password=PASSWORD,
                role=role,
                first_name=fake.first_name(),
                last_name=fake.last_name(),
                email=fake.email(),
                is_staff=role == "admin",
            ))
    print(f"✔ {len(users)} Staff users created.")
    return users


def create_doctors():
    doctors = []
    for i in range(DOCTOR_COUNT):
        username = f"doc_{i}"
        if User.objects.filter(username=username).exists():
            continue
        doctors.append(User.objects.create_user(
            username=username,
            password=PASSWORD,
            role="doctor",
            first_name=fake.first_name(),
            last_name=fake.last_name(),
            email=fake.email(),
            phone=fake.phone_number(),
            specialization=random.choice(SPECIALIZATIONS),
            consultation_fee=Decimal(random.choice([40, 60, 80, 120])),
        ))
    print(f"✔ {len(doctors)} Doctors created.")
    return doctors


def create_patients():
    # Create patients with medical intake data
    patients = []
    for i in range(PATIENT_COUNT):
        username = f"patient_{i}"
        if User.objects.filter(username=username).exists():
            continue
        patients.append(User.objects.create_user(
            username=username,
            password=PASSWORD,
            role="patient",
            first_name=fake.first_name(),
            last_name=fake.last_name(),
            email=fake.email(),
            phone=fake.phone_number(),
            blood_type=random.choice(BLOOD_TYPES),
            allergies=random.sample(ALLERGIES, k=random.randint(0, 2)),
            emergency_contact={
                "name": fake.name(),
                "phone": fake.phone_number(),
                "relationship": random.choice(["Spouse", "Parent", "Sibling", "Friend"]),
            },
        ))
    print(f"✔ {len(patients)} Patients created.")
    return patients


def create_appointments(patients, doctors):
    # Book free slots through the ledger so the no-overlap rule holds
    count = 0
    today = timezone.localdate()
    for patient in patients:
        for _ in range(APPOINTMENTS_PER_PATIENT):
            doctor = random.choice(doctors)
            day = today + timedelta(days=random.randint(0, BOOKING_DAYS_AHEAD))
            slots = available_slots(doctor.id, day)
            if not slots:
                continue
            slot = random.choice(slots)
            try:
                ledger.book(
                    patient_id=patient.id,
                    doctor_id=doctor.id,
                    date=day,
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                    appointment_type=random.choice(["consultation", "follow_up", "checkup"]),
                    reason=fake.sentence(nb_words=6),
                    symptoms=fake.words(nb=random.randint(0, 3)),
                )
                count += 1
            except ClinicError as e:
                print(f"  ✘ Booking skipped: {e.message}")
    print(f"✔ {count} Appointments booked.")


def create_health_cards(patients, reviewer):
    # Half of the patients go through the request workflow, a few are left pending
    issued, pending = 0, 0
    for patient in patients:
        card_request = cards.submit(patient.id)
        if random.random() < 0.5:
            expiry = timezone.localdate() + timedelta(days=random.choice([180, 365, 730]))
            cards.approve(card_request.id, expiry, reviewer=reviewer)
            issued += 1
        else:
            pending += 1
    print(f"✔ {issued} Health cards issued, {pending} requests pending.")


# -----------------------------
# Script execution
# -----------------------------
print("🚀 Starting Clinic Data Generation...")

try:
    staff_users = create_staff()
    doctors_list = create_doctors()
    patients_list = create_patients()

    if doctors_list and patients_list:
        create_appointments(patients_list, doctors_list)

    if patients_list:
        reviewer = User.objects.filter(role="staff").first()
        create_health_cards(patients_list, reviewer)

    print("\n✅ All fake data generated successfully!")
    print("ℹ️  Login Credentials:")
    print("   Admin: admin / Staff: frontdesk")
    print("   Doctor: doc_0 / Patient: patient_0")
    print(f"   Password: {PASSWORD}")

except ClinicError as e:
    print(f"\n❌ Error: {e.message}")

# python3 manage.py shell < scripts/fake_data_generator.py
