from decimal import Decimal
from typing import Optional

from loguru import logger

from src.application.repositories import AbstractUnitOfWork
from src.application.services.access import ensure_company_member
from src.application.services.transactions import transactional
from src.domain.common import CompanyType, VehicleType
from src.domain.entities import Caller, Company, Driver, ParkingLot, Vehicle
from src.domain.errors import ConflictError, ForbiddenError, NotFoundError
from src.shared.utils import normalize_plate


class RegistryService:
    """Reference data: companies, lots, drivers and vehicles."""

    def __init__(self, uow: AbstractUnitOfWork):
        self.uow = uow

    async def _active_company(self, company_id: int, expected_type: CompanyType) -> Company:
        company = await self.uow.companies.get_by_id(company_id)
        if company is None or not company.is_active:
            raise NotFoundError(f"Company {company_id} not found", entity="company")
        if company.company_type != expected_type:
            raise ForbiddenError(
                f"Company {company_id} is not a {expected_type.value.lower()}", entity="company", rule="company_type"
            )
        return company

    @transactional
    async def register_company(
        self,
        caller: Caller,
        name: str,
        cnpj: str,
        company_type: CompanyType,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Company:
        if not caller.is_admin:
            raise ForbiddenError("Only admins can register companies", entity="company", rule="role")
        if await self.uow.companies.get_by_cnpj(cnpj):
            raise ConflictError(f"CNPJ {cnpj} is already registered", entity="company", rule="cnpj_unique")

        company = await self.uow.companies.add(
            Company(name=name, cnpj=cnpj, company_type=company_type, email=email, phone=phone)
        )
        logger.info(f"Company {company.name} ({company.company_type.value}) registered")
        return company

    @transactional
    async def register_parking_lot(
        self, caller: Caller, company_id: int, name: str, address: str, price_per_hour: Decimal
    ) -> ParkingLot:
        ensure_company_member(caller, company_id, "parking_lot")
        company = await self._active_company(company_id, CompanyType.ESTACIONAMENTO)

        lot = await self.uow.parking_lots.add(
            ParkingLot(company_id=company.id, name=name, address=address, price_per_hour=Decimal(str(price_per_hour)))
        )
        logger.info(f"Parking lot {lot.name} registered for company {company.id}")
        return lot

    @transactional
    async def register_driver(
        self,
        caller: Caller,
        company_id: int,
        name: str,
        cpf: str,
        cnh: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Driver:
        ensure_company_member(caller, company_id, "driver")
        company = await self._active_company(company_id, CompanyType.TRANSPORTADORA)
        if await self.uow.drivers.get_by_cpf(cpf):
            raise ConflictError(f"CPF {cpf} is already registered", entity="driver", rule="cpf_unique")

        driver = await self.uow.drivers.add(Driver(company_id=company.id, name=name, cpf=cpf, cnh=cnh, phone=phone))
        logger.info(f"Driver {driver.name} registered for company {company.id}")
        return driver

    @transactional
    async def register_vehicle(
        self,
        caller: Caller,
        company_id: int,
        license_plate: str,
        vehicle_type: VehicleType,
        brand: Optional[str] = None,
        model: Optional[str] = None,
        driver_id: Optional[int] = None,
    ) -> Vehicle:
        ensure_company_member(caller, company_id, "vehicle")
        company = await self._active_company(company_id, CompanyType.TRANSPORTADORA)
        license_plate = normalize_plate(license_plate)
        if await self.uow.vehicles.get_by_license_plate(license_plate):
            raise ConflictError(f"Plate {license_plate} is already registered", entity="vehicle", rule="plate_unique")

        if driver_id is not None:
            driver = await self.uow.drivers.get_by_id(driver_id)
            if driver is None or not driver.is_active:
                raise NotFoundError(f"Driver {driver_id} not found", entity="driver")
            if driver.company_id != company.id:
                raise ForbiddenError("The driver belongs to another company", entity="driver", rule="ownership")

        vehicle = await self.uow.vehicles.add(
            Vehicle(
                company_id=company.id,
                license_plate=license_plate,
                vehicle_type=vehicle_type,
                brand=brand,
                model=model,
                driver_id=driver_id,
            )
        )
        logger.info(f"Vehicle {vehicle.license_plate} registered for company {company.id}")
        return vehicle
