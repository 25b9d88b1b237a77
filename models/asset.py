from typing import Dict, Optional

from pydantic import BaseModel, Field


ASSET_STATUS_ACTIVE = "ACTIVE"


class Category(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None


class SubCategory(BaseModel):
    id: str
    name: str
    slug: str
    category_id: str


class Asset(BaseModel):
    """
    One tracked inventory item.

    properties keeps arbitrary operator/import fields in insertion order
    (Name, Serial No, PO Ref for received goods; spreadsheet columns for
    imported assets).  purchase_order_id is a plain back-reference: deleting
    the PO leaves the asset in place.
    """
    id: str
    sub_category_id: str
    status: str = ASSET_STATUS_ACTIVE
    purchase_order_id: Optional[str] = None
    properties: Dict[str, str] = Field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    # Populated by joined listings only
    category_name: Optional[str] = None
    sub_category_name: Optional[str] = None
