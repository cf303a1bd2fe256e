from decimal import Decimal

from sqlalchemy import select

from .core.config import get_settings
from .models import Client, CounterKind, Company, Employee, Service
from .scheduling.ids import next_sequential_id


settings = get_settings()

DEMO_COMPANY_SLUG = "demo-salon"


async def seed_demo_data(session) -> Company:
    result = await session.execute(select(Company).where(Company.slug == DEMO_COMPANY_SLUG))
    company = result.scalar_one_or_none()

    if not company:
        company = Company(name="Demo Salon", slug=DEMO_COMPANY_SLUG, timezone=settings.business_timezone)
        session.add(company)
        await session.flush()

    # Seed a client if missing
    result = await session.execute(select(Client).where(Client.company_id == company.id))
    if not result.scalars().first():
        client_code = await next_sequential_id(session, company.id, CounterKind.CLIENT)
        session.add(
            Client(
                company_id=company.id,
                client_code=client_code,
                name="Priya Sharma",
                email="priya@example.com",
                phone_number="+919800000001",
                gender="female",
            )
        )

    result = await session.execute(select(Employee).where(Employee.company_id == company.id))
    if not result.scalars().first():
        session.add_all(
            [
                Employee(company_id=company.id, employee_name="Alex", active=True),
                Employee(company_id=company.id, employee_name="Sam", active=True),
            ]
        )

    result = await session.execute(select(Service).where(Service.company_id == company.id))
    if not result.scalars().first():
        session.add_all(
            [
                Service(
                    company_id=company.id,
                    service_name="Consultation",
                    duration="15 mins",
                    price=Decimal("0"),
                ),
                Service(
                    company_id=company.id,
                    service_name="Haircut",
                    duration="30 mins",
                    price=Decimal("500"),
                ),
                Service(
                    company_id=company.id,
                    service_name="Hair Colour",
                    duration="1.5 hours",
                    price=Decimal("2500"),
                ),
            ]
        )

    await session.commit()
    return company
