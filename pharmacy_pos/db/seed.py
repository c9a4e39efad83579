"""
Demo data for local development.

Creates a couple of stores, a small formulary, stock for every drug in every
store and a few customers. Running it twice is harmless: rows that already
exist (matched by name or phone) are left alone and stock is only added to
brand new inventory rows.
"""

import logging
from decimal import Decimal
from typing import Dict

from sqlalchemy.orm import Session

from pharmacy_pos.db.base import Customer as CustomerModel
from pharmacy_pos.db.base import Drug as DrugModel
from pharmacy_pos.db.base import Store as StoreModel
from pharmacy_pos.domain.entities import Customer, Drug, Store
from pharmacy_pos.repositories.catalog_repo import DrugRepository, StoreRepository
from pharmacy_pos.repositories.customer_repo import CustomerRepository
from pharmacy_pos.repositories.inventory_repository import InventoryRepository
from pharmacy_pos.services.inventory_service import InventoryService

logger = logging.getLogger(__name__)

DEMO_STORES = (
    Store(name="Central Pharmacy", location="Accra Central", city="Accra"),
    Store(name="Osu Branch", location="Oxford Street, Osu", city="Accra"),
)

DEMO_DRUGS = (
    (
        Drug(
            name="Paracetamol",
            generic_name="Acetaminophen",
            category="Analgesic",
            strength="500mg",
            dosage_form="Tablet",
        ),
        Decimal("2.50"),
    ),
    (
        Drug(
            name="Amoxicillin",
            generic_name="Amoxicillin",
            category="Antibiotic",
            strength="250mg",
            dosage_form="Capsule",
            prescription_required=True,
        ),
        Decimal("12.00"),
    ),
    (
        Drug(
            name="Artemether/Lumefantrine",
            generic_name="Artemether/Lumefantrine",
            category="Antimalarial",
            strength="20/120mg",
            dosage_form="Tablet",
            prescription_required=True,
        ),
        Decimal("35.00"),
    ),
    (
        Drug(
            name="ORS",
            generic_name="Oral Rehydration Salts",
            category="Electrolyte",
            strength="20.5g",
            dosage_form="Powder",
        ),
        Decimal("4.00"),
    ),
)

DEMO_CUSTOMERS = (
    Customer(name="Walk-in Customer", phone="0200000000"),
    Customer(name="Ama Mensah", phone="0241234567", city="Accra"),
    Customer(name="Kwame Boateng", phone="+233501234567", city="Kumasi"),
)

DEMO_STOCK = 50


def seed_demo_data(session: Session) -> Dict[str, int]:
    """Insert demo rows; return how many of each kind were created."""
    drugs = DrugRepository(session)
    stores = StoreRepository(session)
    customers = CustomerRepository(session)
    inventory = InventoryService(InventoryRepository(session), drugs, stores)
    created = {"stores": 0, "drugs": 0, "inventory": 0, "customers": 0}

    store_ids = []
    for store in DEMO_STORES:
        existing = session.query(StoreModel).filter(StoreModel.name == store.name).first()
        if existing is None:
            store_ids.append(stores.add(store).id)
            created["stores"] += 1
        else:
            store_ids.append(existing.id)

    for drug, price in DEMO_DRUGS:
        existing = session.query(DrugModel).filter(DrugModel.name == drug.name).first()
        if existing is None:
            drug_id = drugs.add(drug).id
            created["drugs"] += 1
        else:
            drug_id = existing.id
        for store_id in store_ids:
            if inventory.repository.get_by_drug_and_store(drug_id, store_id) is None:
                inventory.restock(drug_id, store_id, DEMO_STOCK, selling_price=price)
                created["inventory"] += 1

    for customer in DEMO_CUSTOMERS:
        if (
            session.query(CustomerModel)
            .filter(CustomerModel.phone == customer.phone)
            .first()
            is None
        ):
            customers.add(customer)
            created["customers"] += 1

    logger.info("Demo data seeded", extra={"context": created})
    return created
