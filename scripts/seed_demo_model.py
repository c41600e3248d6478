import argparse

from modeler.database import SessionLocal, unit_of_work
from modeler.errors import ModelingError
from modeler.models import DataModelObject
from modeler.schemas import CreateWithLayersRequest
from modeler.services import LayeredModelBuilder, RelationshipSynchronizer


def seed_demo_model(name: str, target_system: str, link_objects: bool = True) -> None:
    with SessionLocal() as session:
        try:
            with unit_of_work(session):
                result = LayeredModelBuilder(session).create(
                    CreateWithLayersRequest(name=name, target_system=target_system)
                )
                projections = (
                    session.query(DataModelObject)
                    .filter(DataModelObject.model_id == result.conceptual.id)
                    .order_by(DataModelObject.created_at)
                    .all()
                )
                if link_objects and len(projections) >= 2:
                    RelationshipSynchronizer(session).declare(
                        result.conceptual.id, projections[0].id, projections[1].id, "1:N"
                    )
        except ModelingError as exc:
            raise RuntimeError(f"Failed to seed demo model: {exc.message} {exc.details or ''}") from exc

        print(f"Created model family {result.conceptual.id} ({result.message})")
        print(f"  logical:  {result.logical.id}")
        print(f"  physical: {result.physical.id}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed a demo conceptual/logical/physical model family.")
    parser.add_argument("--name", default="Demo Model", help="Name of the conceptual model")
    parser.add_argument(
        "--target-system",
        default="Data Warehouse",
        help="Target system whose template seeds the model",
    )
    parser.add_argument(
        "--no-relationships",
        action="store_true",
        help="Skip linking the first two template objects",
    )

    args = parser.parse_args()
    seed_demo_model(name=args.name, target_system=args.target_system, link_objects=not args.no_relationships)


if __name__ == "__main__":
    main()
