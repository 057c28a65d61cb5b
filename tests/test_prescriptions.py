import pytest
from datetime import date, timedelta
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pharmacy.core.exceptions import (
    NotFoundError, ValidationError, InsufficientStockError, ExceedsPrescribedError
)
from pharmacy.domain.inventory.models import Medicine
from pharmacy.domain.prescriptions.models import Prescription, PrescriptionItem
from pharmacy.domain.prescriptions.service import PrescriptionService, next_prescription_number


@pytest.fixture
async def prescription_service(db_session: AsyncSession):
    """Prescription service fixture"""
    return PrescriptionService(db_session)


@pytest.mark.unit
def test_next_prescription_number():
    assert next_prescription_number(None) == "RX000001"
    assert next_prescription_number("RX000041") == "RX000042"
    assert next_prescription_number("legacy-7") == "RX000001"


@pytest.mark.asyncio
async def test_create_prescription(make_medicine, make_prescription):
    medicine = await make_medicine()
    first = await make_prescription([(medicine.id, 10)])
    second = await make_prescription([(medicine.id, 4)])

    assert first.prescription_number == "RX000001"
    assert second.prescription_number == "RX000002"
    assert first.status == "pending"
    assert first.doctor_license == "TN-12345"
    assert first.items[0].medicine_name == medicine.name
    assert first.items[0].remaining == 10
    assert first.completion_percentage == 0


@pytest.mark.asyncio
async def test_create_prescription_does_not_touch_stock(make_medicine, make_prescription, reload):
    medicine = await make_medicine(quantity=20)
    await make_prescription([(medicine.id, 10)])
    assert (await reload(Medicine, medicine.id)).quantity == 20


@pytest.mark.asyncio
async def test_duplicate_medicine_lines_are_rejected(make_medicine, make_prescription):
    medicine = await make_medicine()
    with pytest.raises(ValidationError):
        await make_prescription([(medicine.id, 2), (medicine.id, 3)])


@pytest.mark.asyncio
async def test_validity_must_be_in_the_future(make_medicine, make_prescription):
    medicine = await make_medicine()
    with pytest.raises(ValidationError):
        await make_prescription([(medicine.id, 2)], valid_until=date.today())


@pytest.mark.asyncio
async def test_unknown_medicine_is_rejected(make_prescription):
    with pytest.raises(NotFoundError):
        await make_prescription([("ghost", 2)])


@pytest.mark.asyncio
async def test_dispense_up_to_prescribed_quantity(
    prescription_service: PrescriptionService, make_medicine, make_prescription, reload
):
    medicine = await make_medicine(quantity=100)
    prescription = await make_prescription([(medicine.id, 10)])
    medicine_id, prescription_id = medicine.id, prescription.id

    partial = await prescription_service.dispense(prescription_id, medicine_id, 7)
    assert partial.status == "partially-dispensed"
    assert partial.items[0].dispensed == 7
    item_id = partial.items[0].id
    assert (await reload(Medicine, medicine_id)).quantity == 93

    with pytest.raises(ExceedsPrescribedError) as exc_info:
        await prescription_service.dispense(prescription_id, medicine_id, 4)
    assert exc_info.value.remaining == 3
    assert "Remaining: 3" in exc_info.value.message
    assert (await reload(Medicine, medicine_id)).quantity == 93
    assert (await reload(PrescriptionItem, item_id)).dispensed == 7

    done = await prescription_service.dispense(prescription_id, medicine_id, 3)
    assert done.status == "dispensed"
    assert done.dispensed_at is not None
    assert done.completion_percentage == 100
    assert (await reload(Medicine, medicine_id)).quantity == 90


@pytest.mark.asyncio
async def test_status_tracks_all_lines(
    prescription_service: PrescriptionService, make_medicine, make_prescription
):
    a = await make_medicine(name="Amoxicillin")
    b = await make_medicine(name="Cetirizine")
    prescription = await make_prescription([(a.id, 2), (b.id, 2)])

    result = await prescription_service.dispense(prescription.id, a.id, 2)
    assert result.status == "partially-dispensed"

    result = await prescription_service.dispense(prescription.id, b.id, 2)
    assert result.status == "dispensed"


@pytest.mark.asyncio
async def test_dispense_with_insufficient_stock_changes_nothing(
    prescription_service: PrescriptionService, make_medicine, make_prescription, reload
):
    medicine = await make_medicine(quantity=2)
    prescription = await make_prescription([(medicine.id, 5)])
    medicine_id, prescription_id = medicine.id, prescription.id

    with pytest.raises(InsufficientStockError):
        await prescription_service.dispense(prescription_id, medicine_id, 3)

    stored = await reload(Prescription, prescription_id)
    assert stored.items[0].dispensed == 0
    assert stored.status == "pending"
    assert (await reload(Medicine, medicine_id)).quantity == 2


@pytest.mark.asyncio
async def test_dispense_medicine_not_on_prescription(
    prescription_service: PrescriptionService, make_medicine, make_prescription
):
    prescribed = await make_medicine()
    other = await make_medicine()
    prescription = await make_prescription([(prescribed.id, 5)])
    prescription_id, other_id = prescription.id, other.id

    with pytest.raises(NotFoundError) as exc_info:
        await prescription_service.dispense(prescription_id, other_id, 1)
    assert exc_info.value.message == "Medicine not found in prescription"


@pytest.mark.asyncio
async def test_dispense_missing_prescription(prescription_service: PrescriptionService, make_medicine):
    medicine = await make_medicine()
    with pytest.raises(NotFoundError):
        await prescription_service.dispense("missing", medicine.id, 1)


@pytest.mark.asyncio
async def test_dispense_rejects_non_positive_quantity(
    prescription_service: PrescriptionService, make_medicine, make_prescription
):
    medicine = await make_medicine()
    prescription = await make_prescription([(medicine.id, 5)])
    with pytest.raises(ValidationError):
        await prescription_service.dispense(prescription.id, medicine.id, 0)


@pytest.mark.asyncio
async def test_cancelled_prescription_cannot_be_dispensed(
    prescription_service: PrescriptionService, make_medicine, make_prescription, reload
):
    medicine = await make_medicine(quantity=50)
    prescription = await make_prescription([(medicine.id, 5)])
    medicine_id, prescription_id = medicine.id, prescription.id

    cancelled = await prescription_service.cancel(prescription_id)
    assert cancelled.status == "cancelled"

    with pytest.raises(ValidationError):
        await prescription_service.dispense(prescription_id, medicine_id, 1)
    assert (await reload(Medicine, medicine_id)).quantity == 50

    with pytest.raises(ValidationError):
        await prescription_service.cancel(prescription_id)


@pytest.mark.asyncio
async def test_fully_dispensed_prescription_cannot_be_cancelled(
    prescription_service: PrescriptionService, make_medicine, make_prescription
):
    medicine = await make_medicine()
    prescription = await make_prescription([(medicine.id, 2)])
    prescription_id = prescription.id
    await prescription_service.dispense(prescription_id, medicine.id, 2)

    with pytest.raises(ValidationError):
        await prescription_service.cancel(prescription_id)


@pytest.mark.asyncio
async def test_update_prescription(
    prescription_service: PrescriptionService, make_medicine, make_prescription
):
    medicine = await make_medicine()
    prescription = await make_prescription([(medicine.id, 2)])

    updated = await prescription_service.update_prescription(
        prescription.id, {"priority": "urgent", "notes": "Call before pickup", "status": "dispensed"}
    )
    assert updated.priority == "urgent"
    assert updated.notes == "Call before pickup"
    assert updated.status == "pending"


@pytest.mark.asyncio
async def test_listing_and_expiry(
    prescription_service: PrescriptionService, make_medicine, make_prescription
):
    medicine = await make_medicine()
    soon = await make_prescription([(medicine.id, 2)], valid_until=date.today() + timedelta(days=3))
    await make_prescription([(medicine.id, 2)], valid_until=date.today() + timedelta(days=60))
    other = await make_prescription(
        [(medicine.id, 2)], customer={"name": "Vikram", "phone": "+919811111111"}
    )

    expiring = await prescription_service.list_expiring(days=7)
    assert [p.id for p in expiring] == [soon.id]

    assert [p.id for p in await prescription_service.list_by_customer("+919811111111")] == [other.id]
    assert len(await prescription_service.list_by_status("pending")) == 3
    with pytest.raises(ValidationError):
        await prescription_service.list_by_status("archived")

    page = await prescription_service.list_prescriptions(doctor="rao", limit=2)
    assert page["pagination"]["total"] == 3
    assert page["pagination"]["pages"] == 2


@pytest.mark.asyncio
async def test_delete_prescription(
    prescription_service: PrescriptionService, make_medicine, make_prescription
):
    medicine = await make_medicine()
    prescription = await make_prescription([(medicine.id, 2)])
    prescription_id = prescription.id
    await prescription_service.delete_prescription(prescription_id)
    with pytest.raises(NotFoundError):
        await prescription_service.get_prescription(prescription_id)


@pytest.mark.asyncio
async def test_database_rejects_over_dispensed_line(session_factory, make_medicine, make_prescription):
    medicine = await make_medicine()
    prescription = await make_prescription([(medicine.id, 2)])
    item_id = prescription.items[0].id

    async with session_factory() as session:
        item = await session.get(PrescriptionItem, item_id)
        item.dispensed = 3
        with pytest.raises(IntegrityError):
            await session.commit()
