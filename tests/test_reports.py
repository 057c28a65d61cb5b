import pytest
from datetime import date, datetime, timedelta
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from pharmacy.core.exceptions import ValidationError
from pharmacy.domain.inventory.service import SupplierService
from pharmacy.domain.prescriptions.service import PrescriptionService
from pharmacy.domain.reports.service import ReportService
from pharmacy.domain.sales.service import SaleService


@pytest.fixture
async def report_service(db_session: AsyncSession):
    return ReportService(db_session)


@pytest.fixture
def this_week():
    now = datetime.utcnow()
    return now - timedelta(days=1), now + timedelta(days=1)


@pytest.fixture
async def stock(make_medicine):
    return {
        "paracetamol": await make_medicine(name="Paracetamol", quantity=100, price=2.0),
        "insulin": await make_medicine(name="Insulin", quantity=4, par_level=10, price=400.0),
        "drops": await make_medicine(name="Eye Drops", expiry_date=date.today() + timedelta(days=10), price=50.0),
    }


@pytest.fixture
async def sold(db_session: AsyncSession, stock, sale_payload):
    sales = SaleService(db_session)
    paracetamol, insulin = stock["paracetamol"].id, stock["insulin"].id
    await sales.create_sale(sale_payload((paracetamol, 10, 2.0)))
    await sales.create_sale(sale_payload((insulin, 1, 400.0), (paracetamol, 5, 2.0), payment_method="card"))
    return stock


@pytest.mark.asyncio
async def test_sales_report(report_service: ReportService, sold, this_week):
    report = await report_service.sales_report(*this_week)

    assert report["summary"] == {
        "total_sales": 2,
        "total_revenue": 430.0,
        "total_items": 16,
        "average_order_value": 215.0,
    }
    assert report["payment_methods"] == {"cash": 1, "card": 1}
    assert report["daily_sales"] == [
        {"date": datetime.utcnow().date().isoformat(), "sales": 2, "revenue": 430.0, "items": 16}
    ]
    assert report["top_medicines"] == [
        {"name": "Insulin", "quantity": 1, "revenue": 400.0},
        {"name": "Paracetamol", "quantity": 15, "revenue": 30.0},
    ]


@pytest.mark.asyncio
async def test_sales_report_outside_range_is_empty(report_service: ReportService, sold):
    start = datetime.utcnow() - timedelta(days=30)
    report = await report_service.sales_report(start, start + timedelta(days=1))

    assert report["summary"]["total_sales"] == 0
    assert report["summary"]["average_order_value"] == 0.0
    assert report["daily_sales"] == []
    assert report["top_medicines"] == []


@pytest.mark.asyncio
async def test_report_range_must_be_ordered(report_service: ReportService, this_week):
    start, end = this_week
    with pytest.raises(ValidationError):
        await report_service.sales_report(end, start)
    with pytest.raises(ValidationError):
        await report_service.prescriptions_report(end, start)


@pytest.mark.asyncio
async def test_inventory_report(report_service: ReportService, sold):
    report = await report_service.inventory_report()

    assert report["summary"] == {
        "total_medicines": 3,
        "total_value": 85 * 2.0 + 3 * 400.0 + 100 * 50.0,
        "low_stock_items": 1,
        "expired_items": 0,
        "expiring_soon_items": 1,
    }
    assert report["status_breakdown"] == {
        "in-stock": 1, "low-stock": 1, "expiring-soon": 1, "expired": 0
    }
    assert report["category_breakdown"] == [
        {"name": "Analgesics", "count": 3, "total_quantity": 188, "total_value": 6370.0}
    ]
    assert report["supplier_breakdown"][0]["name"] == "MedSupply Co"


@pytest.mark.asyncio
async def test_inventory_report_counts_todays_status(report_service: ReportService, make_medicine):
    await make_medicine(expiry_date=date.today() + timedelta(days=10), today=date.today() - timedelta(days=30))

    report = await report_service.inventory_report()
    assert report["summary"]["expiring_soon_items"] == 1
    assert report["status_breakdown"]["in-stock"] == 0


@pytest.mark.asyncio
async def test_prescriptions_report(
    db_session: AsyncSession, report_service: ReportService, stock, make_prescription, this_week
):
    paracetamol, insulin = stock["paracetamol"].id, stock["insulin"].id
    service = PrescriptionService(db_session)

    dispensed = await make_prescription([(paracetamol, 2)])
    await service.dispense(dispensed.id, paracetamol, 2)
    await make_prescription(
        [(insulin, 1), (paracetamol, 3)], doctor={"name": "Dr. Iyer", "license": "tn-999"}
    )
    cancelled = await make_prescription([(paracetamol, 1)])
    await service.cancel(cancelled.id)

    report = await report_service.prescriptions_report(*this_week)

    assert report["summary"] == {
        "total_prescriptions": 3,
        "pending_prescriptions": 1,
        "partially_dispensed_prescriptions": 0,
        "dispensed_prescriptions": 1,
        "cancelled_prescriptions": 1,
    }
    assert report["priority_breakdown"] == {"normal": 3}
    assert report["doctor_breakdown"] == [
        {"name": "Dr. Rao", "count": 2, "pending": 0, "partially_dispensed": 0, "dispensed": 1, "cancelled": 1},
        {"name": "Dr. Iyer", "count": 1, "pending": 1, "partially_dispensed": 0, "dispensed": 0, "cancelled": 0},
    ]
    assert report["medicine_breakdown"] == [
        {"name": "Paracetamol", "prescribed": 6, "dispensed": 2, "count": 3},
        {"name": "Insulin", "prescribed": 1, "dispensed": 0, "count": 1},
    ]
    assert len(report["daily_breakdown"]) == 1
    assert report["daily_breakdown"][0]["total"] == 3


@pytest.mark.asyncio
async def test_suppliers_report(db_session: AsyncSession, report_service: ReportService, sold):
    await SupplierService(db_session).create_supplier({
        "name": "Generic Wholesale",
        "contact": "+919800000003",
        "email": "hello@generic.example.com",
    })

    report = await report_service.suppliers_report()

    assert report["summary"] == {
        "total_suppliers": 2,
        "active_suppliers": 2,
        "total_medicines": 3,
        "total_value": 6370.0,
    }
    empty, stocked = report["suppliers"]
    assert empty["name"] == "Generic Wholesale"
    assert empty["statistics"] == {
        "total_medicines": 0,
        "total_quantity": 0,
        "total_value": 0.0,
        "low_stock_medicines": 0,
        "expired_medicines": 0,
    }
    assert stocked["statistics"]["low_stock_medicines"] == 1
    assert stocked["statistics"]["total_quantity"] == 188


@pytest.mark.asyncio
@pytest.mark.integration
async def test_report_endpoints(client: AsyncClient):
    start = (datetime.utcnow() - timedelta(days=7)).isoformat()
    end = datetime.utcnow().isoformat()

    sales = await client.get("/api/v1/reports/sales", params={"start_date": start, "end_date": end})
    assert sales.status_code == 200
    assert sales.json()["summary"]["total_sales"] == 0

    for path in ("/api/v1/reports/inventory", "/api/v1/reports/suppliers"):
        assert (await client.get(path)).status_code == 200

    reversed_range = await client.get(
        "/api/v1/reports/prescriptions", params={"start_date": end, "end_date": start}
    )
    assert reversed_range.status_code == 400

    missing_dates = await client.get("/api/v1/reports/sales")
    assert missing_dates.status_code == 400
