from typing import Annotated, Optional

from fastapi import APIRouter, Query

from db import SessionDep
from schemas import AnimalCreate, AnimalDetail, AnimalRead, AnimalUpdate, envelope
from services import adoptions as adoption_service
from services import animals as animal_service
from .auth import AdminDep, OptionalUserDep

router = APIRouter(tags=["animals"])


def _read_all(animals) -> list[AnimalRead]:
    return [AnimalRead.model_validate(animal) for animal in animals]


@router.get("/animals")
def list_available_animals(session: SessionDep):
    """
    Animals open for adoption, newest first.
    """
    animals = animal_service.list_available(session)
    return envelope(_read_all(animals), count=len(animals))


@router.get("/animals/search")
def search_animals(
    session: SessionDep,
    type: Optional[str] = None,
    city: Optional[str] = None,
    breed: Optional[str] = None,
    min_age: Annotated[Optional[int], Query(alias="minAge", ge=0)] = None,
    max_age: Annotated[Optional[int], Query(alias="maxAge", ge=0)] = None,
    status: Optional[str] = None,
):
    animals = animal_service.search_animals(
        session,
        type=type,
        city=city,
        breed=breed,
        min_age=min_age,
        max_age=max_age,
        status=status,
    )
    filters = {
        "type": type,
        "city": city,
        "breed": breed,
        "minAge": min_age,
        "maxAge": max_age,
        "status": status or "available",
    }
    return envelope(_read_all(animals), count=len(animals), filters=filters)


@router.get("/animals/{animal_id}")
def get_animal(animal_id: int, session: SessionDep, current: OptionalUserDep):
    """
    A single animal. Admins also get its adoption request history.
    """
    animal = animal_service.get_animal(session, animal_id)
    if current is None or current.role != "admin":
        return envelope(AnimalRead.model_validate(animal))

    history = [
        adoption_service.to_read(adoption, user=user)
        for adoption, user in animal_service.animal_history(session, animal_id)
    ]
    detail = AnimalDetail.model_validate(animal).model_copy(update={"adoptions": history})
    return envelope(detail)


@router.post("/animals", status_code=201)
def create_animal(data: AnimalCreate, session: SessionDep, admin: AdminDep):
    animal = animal_service.create_animal(session, data)
    return envelope(AnimalRead.model_validate(animal), message="Animal created")


@router.put("/animals/{animal_id}")
def update_animal(animal_id: int, data: AnimalUpdate, session: SessionDep, admin: AdminDep):
    animal = animal_service.update_animal(session, animal_id, data.changes())
    return envelope(AnimalRead.model_validate(animal), message="Animal updated")


@router.delete("/animals/{animal_id}")
def delete_animal(animal_id: int, session: SessionDep, admin: AdminDep):
    """
    Refused with 409 while adoption requests are pending for the animal.
    """
    animal_service.delete_animal(session, animal_id)
    return envelope(message="Animal deleted")


@router.patch("/animals/{animal_id}/adopt")
def mark_adopted(animal_id: int, session: SessionDep, admin: AdminDep):
    animal = animal_service.mark_adopted(session, animal_id)
    return envelope(AnimalRead.model_validate(animal), message="Animal marked as adopted")


@router.patch("/animals/{animal_id}/available")
def mark_available(animal_id: int, session: SessionDep, admin: AdminDep):
    animal = animal_service.mark_available(session, animal_id)
    return envelope(AnimalRead.model_validate(animal), message="Animal marked as available")


@router.get("/admin/stats")
def animal_stats(session: SessionDep, admin: AdminDep):
    return envelope(animal_service.animal_stats(session))


@router.get("/admin/animals")
def list_all_animals(session: SessionDep, admin: AdminDep):
    animals = animal_service.list_all(session)
    return envelope(_read_all(animals), count=len(animals))
