from sqlalchemy.orm import Session

from app.db.repository import SqlRepository
from app.db.session import session_scope
from jobcost.engine import JobCostingEngine
from jobcost.models import Equipment, Loadout, WorkOrder, Worker

DEMO_COMPANY = "demo"


def seed(session: Session, company_id: str = DEMO_COMPANY) -> WorkOrder:
    engine = JobCostingEngine(SqlRepository(session))
    repository = engine.repository

    with repository.atomic():
        repository.add_worker(Worker(id="w-lead", company_id=company_id, name="Ada Lead", effective_rate=30.0))
        repository.add_worker(
            Worker(id="w-crew", company_id=company_id, name="Grace Crew", fully_burdened_rate=25.0)
        )
        repository.add_equipment(Equipment(id="eq-mulcher", company_id=company_id, name="Forestry mulcher", hourly_cost=85.0))
        repository.add_equipment(Equipment(id="eq-truck", company_id=company_id, name="Crew truck", hourly_cost=25.0))
        repository.add_loadout(
            Loadout(id="lo-standard", company_id=company_id, name="Standard", equipment_ids=["eq-mulcher", "eq-truck"])
        )
        work_order = engine.create_work_order(company_id, loadout_id="lo-standard", notes="Demo clearing job")
        engine.completion.add_line_item(
            company_id,
            work_order.id,
            display_name="Mulch 3 acres",
            service_type="forestry_mulching",
            estimated_hours=6.0,
            estimated_score=3.0,
            line_item_total=2400.0,
        )
    return repository.get_work_order(company_id, work_order.id)


def seed_database(company_id: str = DEMO_COMPANY) -> str:
    with session_scope() as session:
        work_order = seed(session, company_id)
    return work_order.id


if __name__ == "__main__":
    seed_database()
