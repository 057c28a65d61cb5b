import pytest
from datetime import date, timedelta
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pharmacy.core.exceptions import NotFoundError, ConflictError, ValidationError
from pharmacy.domain.inventory.models import Medicine
from pharmacy.domain.inventory.service import InventoryService, CategoryService, SupplierService
from pharmacy.domain.inventory.status import derive_status
from pharmacy.domain.sales.service import SaleService


@pytest.fixture
async def inventory_service(db_session: AsyncSession):
    """Inventory service fixture"""
    return InventoryService(db_session)


@pytest.mark.asyncio
async def test_create_medicine_derives_status(make_medicine):
    healthy = await make_medicine(quantity=100, par_level=10)
    low = await make_medicine(quantity=10, par_level=10)
    expiring = await make_medicine(expiry_date=date.today() + timedelta(days=20))

    assert healthy.status == "in-stock"
    assert low.status == "low-stock"
    assert expiring.status == "expiring-soon"


@pytest.mark.asyncio
async def test_caller_supplied_status_is_ignored(make_medicine):
    medicine = await make_medicine(quantity=100, status="expired")
    assert medicine.status == "in-stock"


@pytest.mark.asyncio
async def test_create_medicine_rejects_past_expiry(make_medicine):
    with pytest.raises(ValidationError):
        await make_medicine(expiry_date=date.today() - timedelta(days=1))


@pytest.mark.asyncio
async def test_create_medicine_rejects_negative_quantity(make_medicine):
    with pytest.raises(ValidationError):
        await make_medicine(quantity=-5)


@pytest.mark.asyncio
async def test_create_medicine_requires_existing_category(make_medicine):
    with pytest.raises(NotFoundError):
        await make_medicine(category_id="missing-category")


@pytest.mark.asyncio
async def test_duplicate_barcode_conflicts(make_medicine):
    await make_medicine(barcode="8901234567890")
    with pytest.raises(ConflictError):
        await make_medicine(barcode="8901234567890")


@pytest.mark.asyncio
async def test_restock_lifts_low_stock(inventory_service: InventoryService, make_medicine):
    medicine = await make_medicine(quantity=5, par_level=10)
    assert medicine.status == "low-stock"

    restocked = await inventory_service.restock(medicine.id, 20)
    assert restocked.quantity == 25
    assert restocked.status == "in-stock"


@pytest.mark.asyncio
async def test_restock_rejects_non_positive_quantity(inventory_service: InventoryService, make_medicine):
    medicine = await make_medicine()
    with pytest.raises(ValidationError):
        await inventory_service.restock(medicine.id, 0)


@pytest.mark.asyncio
async def test_update_re_derives_status(inventory_service: InventoryService, make_medicine, reload):
    medicine = await make_medicine(quantity=100, par_level=10)

    updated = await inventory_service.update_medicine(medicine.id, {"quantity": 0, "status": "in-stock"})
    assert updated.status == "expired"

    stored = await reload(Medicine, medicine.id)
    assert stored.quantity == 0
    assert stored.status == "expired"
    assert stored.version == 2


@pytest.mark.asyncio
async def test_update_missing_medicine(inventory_service: InventoryService):
    with pytest.raises(NotFoundError):
        await inventory_service.update_medicine("nope", {"quantity": 1})


@pytest.mark.asyncio
async def test_list_medicines_search_and_pagination(inventory_service: InventoryService, make_medicine):
    for i in range(3):
        await make_medicine(name=f"Amoxicillin {i}")
    await make_medicine(name="Cetirizine")

    result = await inventory_service.list_medicines(search="amoxi", page=1, limit=2)
    assert result["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
    assert len(result["items"]) == 2
    assert all("Amoxicillin" in m.name for m in result["items"])


@pytest.mark.asyncio
async def test_list_by_status(inventory_service: InventoryService, make_medicine):
    await make_medicine(quantity=3, par_level=10)
    await make_medicine(quantity=100)

    low = await inventory_service.list_by_status("low-stock")
    assert len(low) == 1

    with pytest.raises(ValidationError):
        await inventory_service.list_by_status("sold-out")


@pytest.mark.asyncio
async def test_list_expiring(inventory_service: InventoryService, make_medicine):
    soon = await make_medicine(expiry_date=date.today() + timedelta(days=10))
    await make_medicine(expiry_date=date.today() + timedelta(days=200))
    await make_medicine(expiry_date=date.today() + timedelta(days=5), quantity=0)

    expiring = await inventory_service.list_expiring(days=30)
    assert [m.id for m in expiring] == [soon.id]


@pytest.mark.asyncio
async def test_refresh_statuses_follows_the_calendar(inventory_service: InventoryService, make_medicine):
    medicine = await make_medicine(expiry_date=date.today() + timedelta(days=40))
    assert medicine.status == "in-stock"

    assert await inventory_service.refresh_statuses(today=date.today()) == 0

    changed = await inventory_service.refresh_statuses(today=date.today() + timedelta(days=15))
    assert changed == 1
    assert (await inventory_service.get_medicine(medicine.id)).status == "expiring-soon"

    await inventory_service.refresh_statuses(today=date.today() + timedelta(days=40))
    assert (await inventory_service.get_medicine(medicine.id)).status == "expired"


@pytest.mark.asyncio
async def test_delete_medicine(inventory_service: InventoryService, make_medicine):
    medicine = await make_medicine()
    await inventory_service.delete_medicine(medicine.id)
    with pytest.raises(NotFoundError):
        await inventory_service.get_medicine(medicine.id)


@pytest.mark.asyncio
async def test_delete_medicine_referenced_by_sale(
    db_session: AsyncSession, inventory_service: InventoryService, make_medicine, sale_payload
):
    medicine = await make_medicine()
    await SaleService(db_session).create_sale(sale_payload((medicine.id, 1, 2.5)))

    with pytest.raises(ConflictError):
        await inventory_service.delete_medicine(medicine.id)


@pytest.mark.asyncio
async def test_category_names_are_unique_ignoring_case(db_session: AsyncSession, category):
    service = CategoryService(db_session)
    with pytest.raises(ConflictError):
        await service.create_category({"name": "analgesics"})


@pytest.mark.asyncio
async def test_category_in_use_cannot_be_deleted(db_session: AsyncSession, category, make_medicine):
    await make_medicine()
    with pytest.raises(ConflictError):
        await CategoryService(db_session).delete_category(category.id)


@pytest.mark.asyncio
async def test_category_delete_removes_children(db_session: AsyncSession, category):
    service = CategoryService(db_session)
    child = await service.create_category({"name": "Topical analgesics", "parent_id": category.id})

    await service.delete_category(category.id)

    assert await service.list_categories() == []
    with pytest.raises(NotFoundError):
        await service.get_category(child.id)


@pytest.mark.asyncio
async def test_toggle_supplier(db_session: AsyncSession, supplier):
    service = SupplierService(db_session)
    toggled = await service.toggle_supplier(supplier.id)
    assert toggled.active is False
    assert await service.list_suppliers(active_only=True) == []


@pytest.mark.asyncio
async def test_supplier_in_use_cannot_be_deleted(db_session: AsyncSession, supplier, make_medicine):
    await make_medicine()
    with pytest.raises(ConflictError):
        await SupplierService(db_session).delete_supplier(supplier.id)


@pytest.mark.asyncio
async def test_expired_batch_can_still_be_edited(inventory_service: InventoryService, make_medicine, reload):
    expiry = date.today() - timedelta(days=3)
    medicine = await make_medicine(expiry_date=expiry, today=date.today() - timedelta(days=10))
    medicine_id = medicine.id

    # The edit form resubmits the stored expiry date unchanged
    updated = await inventory_service.update_medicine(medicine_id, {"quantity": 0, "expiry_date": expiry})
    assert updated.quantity == 0
    assert updated.status == "expired"
    assert (await reload(Medicine, medicine_id)).quantity == 0


@pytest.mark.asyncio
async def test_changing_expiry_to_the_past_is_rejected(inventory_service: InventoryService, make_medicine, reload):
    medicine = await make_medicine()
    medicine_id, expiry = medicine.id, medicine.expiry_date

    with pytest.raises(ValidationError):
        await inventory_service.update_medicine(
            medicine_id, {"expiry_date": date.today() - timedelta(days=1)}
        )
    assert (await reload(Medicine, medicine_id)).expiry_date == expiry


@pytest.mark.asyncio
async def test_update_ignores_explicit_nulls(inventory_service: InventoryService, make_medicine, reload):
    medicine = await make_medicine(name="Cetirizine 10mg")
    medicine_id = medicine.id

    updated = await inventory_service.update_medicine(medicine_id, {"name": None, "price": None, "quantity": 5})
    assert updated.quantity == 5

    stored = await reload(Medicine, medicine_id)
    assert stored.name == "Cetirizine 10mg"
    assert stored.price == 2.5


@pytest.mark.asyncio
async def test_status_filters_use_todays_status_not_the_stored_one(
    inventory_service: InventoryService, make_medicine
):
    # Created a month ago, so it was stored as in-stock and has since crept into the warning window
    stale = await make_medicine(
        expiry_date=date.today() + timedelta(days=10), today=date.today() - timedelta(days=30)
    )
    assert stale.status == "in-stock"

    expiring = await inventory_service.list_medicines(status="expiring-soon")
    assert [m.id for m in expiring["items"]] == [stale.id]
    assert expiring["pagination"]["total"] == 1

    in_stock = await inventory_service.list_medicines(status="in-stock")
    assert in_stock["pagination"]["total"] == 0

    assert [m.id for m in await inventory_service.list_by_status("expiring-soon")] == [stale.id]
    assert await inventory_service.list_by_status("in-stock") == []


@pytest.mark.asyncio
async def test_sql_status_matches_derive_status(db_session: AsyncSession, make_medicine):
    await make_medicine(quantity=100, par_level=10, expiry_date=date.today() + timedelta(days=31))
    await make_medicine(quantity=10, par_level=10, expiry_date=date.today() + timedelta(days=200))
    await make_medicine(quantity=0, par_level=10)
    await make_medicine(quantity=3, par_level=10, expiry_date=date.today() + timedelta(days=30))
    await make_medicine(quantity=50, par_level=0, expiry_date=date.today() + timedelta(days=1))

    for offset in (0, 1, 2, 31, 200, 400):
        day = date.today() + timedelta(days=offset)
        rows = (await db_session.execute(
            select(Medicine.quantity, Medicine.par_level, Medicine.expiry_date, Medicine.status_as_of(day))
        )).all()
        for quantity, par_level, expiry, sql_status in rows:
            assert sql_status == derive_status(quantity, par_level, expiry, day).value


@pytest.mark.asyncio
async def test_database_rejects_negative_stock(session_factory, make_medicine):
    medicine = await make_medicine()

    async with session_factory() as session:
        stored = await session.get(Medicine, medicine.id)
        stored.quantity = -1
        with pytest.raises(IntegrityError):
            await session.commit()
