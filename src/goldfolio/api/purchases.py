import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from goldfolio.api.deps import get_db, resolve_user_id
from goldfolio.api.schemas.purchases import PurchaseCreate, PurchaseList, PurchaseResponse, PurchaseUpdate
from goldfolio.db.repos.purchase_repo import PurchaseRepo

router = APIRouter(prefix="/api/purchases", tags=["purchases"])

DbDep = Annotated[AsyncSession, Depends(get_db)]
UserDep = Annotated[uuid.UUID, Depends(resolve_user_id)]


@router.post("", response_model=PurchaseResponse, status_code=status.HTTP_201_CREATED)
async def add_purchase(body: PurchaseCreate, db: DbDep, user_id: UserDep) -> PurchaseResponse:
    repo = PurchaseRepo(db)
    purchase = await repo.create(
        user_id=user_id,
        weight_grams=body.weight_grams,
        purchase_date=body.purchase_date,
        purchase_price_per_gram=body.purchase_price_per_gram,
        carat=body.carat,
        description=body.description,
    )
    await db.commit()
    await db.refresh(purchase)
    return PurchaseResponse.model_validate(purchase)


@router.get("", response_model=PurchaseList)
async def list_purchases(db: DbDep, user_id: UserDep) -> PurchaseList:
    purchases = await PurchaseRepo(db).get_all(user_id)
    return PurchaseList(purchases=[PurchaseResponse.model_validate(p) for p in purchases], total=len(purchases))


@router.get("/{purchase_id}", response_model=PurchaseResponse)
async def get_purchase(purchase_id: uuid.UUID, db: DbDep, user_id: UserDep) -> PurchaseResponse:
    purchase = await PurchaseRepo(db).get_by_id(user_id, purchase_id)
    if purchase is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Purchase not found")
    return PurchaseResponse.model_validate(purchase)


@router.patch("/{purchase_id}", response_model=PurchaseResponse)
async def update_purchase(
    purchase_id: uuid.UUID, body: PurchaseUpdate, db: DbDep, user_id: UserDep
) -> PurchaseResponse:
    purchase = await PurchaseRepo(db).update(user_id, purchase_id, **body.model_dump(exclude_unset=True))
    if purchase is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Purchase not found")
    await db.commit()
    return PurchaseResponse.model_validate(purchase)


@router.delete("/{purchase_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_purchase(purchase_id: uuid.UUID, db: DbDep, user_id: UserDep) -> None:
    deleted = await PurchaseRepo(db).delete(user_id, purchase_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Purchase not found")
    await db.commit()
