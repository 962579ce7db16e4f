"""Beneficiary (orphan) routes: public listing, admin-managed profiles"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from orphancare.core.security import require_admin
from orphancare.db.session import get_db
from orphancare.schemas.beneficiaries import BeneficiaryCreate, BeneficiaryUpdate
from orphancare.services.beneficiary_service import (
    create_beneficiary, delete_beneficiary, get_beneficiary, list_beneficiaries, update_beneficiary
)

router = APIRouter(prefix="/orphans", tags=["orphans"])


@router.get("")
def list_orphans(
    search: Optional[str] = Query(None, description="Matches name, location or story"),
    category_id: Optional[str] = Query(None, alias="categoryId"),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    return {
        "success": True,
        "data": list_beneficiaries(db, search=search, limit=limit, category_id=category_id)
    }


@router.get("/{beneficiary_id}")
def get_orphan(beneficiary_id: int, db: Session = Depends(get_db)):
    return {"success": True, "data": get_beneficiary(beneficiary_id, db)}


@router.post("")
def create_orphan(
    orphan: BeneficiaryCreate,
    admin_id: int = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create an orphan profile (admin only)"""
    data = create_beneficiary(orphan.model_dump(), db)
    return {"success": True, "message": "Orphan created successfully", "data": data}


@router.put("/{beneficiary_id}")
def update_orphan(
    beneficiary_id: int,
    orphan: BeneficiaryUpdate,
    admin_id: int = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update supplied fields of an orphan profile (admin only)"""
    data = update_beneficiary(beneficiary_id, orphan.model_dump(exclude_unset=True), db)
    return {"success": True, "message": "Orphan updated successfully", "data": data}


@router.delete("/{beneficiary_id}")
def delete_orphan(
    beneficiary_id: int,
    admin_id: int = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete an orphan profile with no donations (admin only)"""
    delete_beneficiary(beneficiary_id, db)
    return {"success": True, "message": "Orphan deleted successfully"}
