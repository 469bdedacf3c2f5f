"""
BizMate API Schemas

Each record family has three Pydantic models: an ``In`` model validating a
create body, a ``Patch`` model whitelisting the fields an update may touch,
and an ``Out`` model shaping what clients get back. Field aliases are the
JSON names, which are also the field names stored in MongoDB (the
collection name is the lowercase entity name, e.g. Customer -> "customer").
"""

import datetime as dt
from typing import Any, ClassVar, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RecordModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class PatchModel(RecordModel):
    # Fields that must stay non-null once a record exists.
    non_nullable: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="before")
    @classmethod
    def reject_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            for name in cls.non_nullable:
                key = cls.model_fields[name].alias or name
                if data.get(key, ...) is None or data.get(name, ...) is None:
                    raise ValueError(f"{key} may not be null")
        return data

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class StoredFields(RecordModel):
    id: str
    owner_id: str = Field(..., alias="ownerId")
    created_at: dt.datetime = Field(..., alias="createdAt")


# ------------------ Users / Auth ------------------
class RegisterIn(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class LoginIn(BaseModel):
    email: str
    password: str


class UserOut(BaseModel):
    name: Optional[str] = None
    email: str


class RegisterOut(BaseModel):
    message: str
    user: UserOut


class TokenOut(BaseModel):
    token: str
    user: UserOut


class ProfileOut(BaseModel):
    user: UserOut


class Identity(BaseModel):
    """Who the bearer token says the caller is."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    email: str


class MessageOut(BaseModel):
    message: str


# ------------------ Customers ------------------
class CustomerIn(RecordModel):
    name: Optional[str] = Field(None, description="Customer full name")
    email: Optional[str] = Field(None, description="Email address")
    phone: Optional[str] = Field(None, description="Phone number")
    location: Optional[str] = Field(None, description="City or address")
    status: Literal["active", "inactive"] = "active"
    invoice_count: float = Field(0, alias="invoiceCount", description="Invoices issued to this customer")
    total_spent: float = Field(0, alias="totalSpent", description="Lifetime spend")


class CustomerPatch(PatchModel):
    non_nullable = ("status", "invoice_count", "total_spent")

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    status: Optional[Literal["active", "inactive"]] = None
    invoice_count: Optional[float] = Field(None, alias="invoiceCount")
    total_spent: Optional[float] = Field(None, alias="totalSpent")


class CustomerOut(CustomerIn, StoredFields):
    pass


# ------------------ Employees ------------------
class EmployeeIn(RecordModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    phone: Optional[str] = None
    position: Optional[str] = None
    role: Optional[Literal["employee", "manager", "admin"]] = Field(None, description="Counted by the dashboard when set")
    status: Optional[Literal["active", "inactive"]] = Field(None, description="Counted by the dashboard when set")


class EmployeePatch(PatchModel):
    non_nullable = ("name", "email")

    name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = None
    position: Optional[str] = None
    role: Optional[Literal["employee", "manager", "admin"]] = None
    status: Optional[Literal["active", "inactive"]] = None


class EmployeeOut(EmployeeIn, StoredFields):
    pass


# ------------------ Products ------------------
class ProductIn(RecordModel):
    name: str = Field(..., min_length=1)
    sku: str = Field(..., min_length=1)
    price: float = Field(..., description="Unit price")
    stock: float = Field(0, description="Available quantity in stock")
    category: Optional[str] = None
    status: Literal["active", "inactive"] = "active"
    low_stock: bool = Field(False, alias="lowStock", description="Replenishment advised")


class ProductPatch(PatchModel):
    non_nullable = ("name", "sku", "price", "stock", "status", "low_stock")

    name: Optional[str] = Field(None, min_length=1)
    sku: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = None
    stock: Optional[float] = None
    category: Optional[str] = None
    status: Optional[Literal["active", "inactive"]] = None
    low_stock: Optional[bool] = Field(None, alias="lowStock")


class ProductOut(ProductIn, StoredFields):
    pass


# ------------------ Invoices ------------------
InvoiceType = Literal["customer", "employee", "other"]
InvoiceStatus = Literal["pending", "paid", "overdue", "draft"]


class InvoiceIn(RecordModel):
    type: InvoiceType
    recipient: str = Field(..., min_length=1, description="Free-text copy of the payee name")
    amount: float = Field(..., description="Negative for refunds and credit notes")
    status: InvoiceStatus = "pending"
    issued_on: dt.date = Field(..., alias="date")
    due_on: dt.date = Field(..., alias="dueDate")


class InvoicePatch(PatchModel):
    non_nullable = ("type", "recipient", "amount", "status", "issued_on", "due_on")

    type: Optional[InvoiceType] = None
    recipient: Optional[str] = Field(None, min_length=1)
    amount: Optional[float] = None
    status: Optional[InvoiceStatus] = None
    issued_on: Optional[dt.date] = Field(None, alias="date")
    due_on: Optional[dt.date] = Field(None, alias="dueDate")


class InvoiceOut(InvoiceIn, StoredFields):
    pass


# ------------------ Dashboard ------------------
class DashboardStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_revenue: float = Field(0, alias="totalRevenue")
    paid: float = 0
    pending: float = 0
    draft: float = 0
    total_employees: int = Field(0, alias="totalEmployees")
    active_employees: int = Field(0, alias="activeEmployees")
    inactive_employees: int = Field(0, alias="inactiveEmployees")
    managers: int = 0
    admins: int = 0
    total_customers: int = Field(0, alias="totalCustomers")
    total_products: int = Field(0, alias="totalProducts")
    total_invoices: int = Field(0, alias="totalInvoices")


class MonthlyRevenue(BaseModel):
    month: str
    revenue: float


class DashboardOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    stats: DashboardStats
    revenue_data: List[MonthlyRevenue] = Field(default_factory=list, alias="revenueData")


class Activity(BaseModel):
    id: str
    type: Literal["customer", "invoice", "product"]
    action: str
    details: str
    time: dt.datetime
