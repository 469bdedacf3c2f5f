import logging
from typing import Any, Dict, List, Optional, Type

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from dashboard import DashboardService
from errors import InvalidCredentialsError
from schemas import (
    Activity,
    CustomerIn,
    CustomerOut,
    CustomerPatch,
    DashboardOut,
    EmployeeIn,
    EmployeeOut,
    EmployeePatch,
    Identity,
    InvoiceIn,
    InvoiceOut,
    InvoicePatch,
    LoginIn,
    MessageOut,
    ProductIn,
    ProductOut,
    ProductPatch,
    ProfileOut,
    RegisterIn,
    RegisterOut,
    TokenOut,
)
from security import PasswordHasher, TokenService, require_user
from stores import RecordStore, Stores

logger = logging.getLogger(__name__)


def get_stores(request: Request) -> Stores:
    return request.app.state.stores


def get_dashboard(stores: Stores = Depends(get_stores)) -> DashboardService:
    return DashboardService(stores)


def _public_user(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {"name": doc.get("name"), "email": doc["email"]}


# ------------------ Auth ------------------
auth_router = APIRouter(prefix="/api", tags=["Auth"])


@auth_router.post("/register", response_model=RegisterOut)
def register(payload: RegisterIn, request: Request, stores: Stores = Depends(get_stores)):
    hasher: PasswordHasher = request.app.state.hasher
    user = stores.users.create(payload.name, payload.email, hasher.hash(payload.password))
    logger.info("Registered user %s", user["_id"])
    return {"message": "User registered", "user": _public_user(user)}


@auth_router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, request: Request, stores: Stores = Depends(get_stores)):
    hasher: PasswordHasher = request.app.state.hasher
    tokens: TokenService = request.app.state.tokens
    user = stores.users.find_by_email(payload.email)
    if not user or not hasher.verify(payload.password, user.get("passwordHash")):
        logger.info("Rejected login attempt")
        raise InvalidCredentialsError()
    token = tokens.issue({"userId": str(user["_id"]), "email": user["email"]})
    return {"token": token, "user": _public_user(user)}


@auth_router.get("/profile", response_model=ProfileOut)
def profile(identity: Identity = Depends(require_user), stores: Stores = Depends(get_stores)):
    return {"user": _public_user(stores.users.get(identity.user_id))}


# ------------------ Owned records ------------------
def record_router(
    path: str,
    store_name: str,
    create_model: Type[BaseModel],
    patch_model: Type[BaseModel],
    out_model: Type[BaseModel],
) -> APIRouter:
    """List/create/update/delete routes for one owner-scoped collection."""
    router = APIRouter(prefix=f"/api/{path}", tags=[path.title()])

    def store_of(stores: Stores = Depends(get_stores)) -> RecordStore:
        return getattr(stores, store_name)

    @router.get("", response_model=List[out_model])
    def list_records(
        q: Optional[str] = None,
        identity: Identity = Depends(require_user),
        store: RecordStore = Depends(store_of),
    ):
        return store.list(identity.user_id, q=q)

    @router.post("", response_model=out_model)
    def create_record(
        payload: create_model,
        identity: Identity = Depends(require_user),
        store: RecordStore = Depends(store_of),
    ):
        return store.create(identity.user_id, payload)

    @router.put("/{record_id}", response_model=out_model)
    def update_record(
        record_id: str,
        payload: patch_model,
        identity: Identity = Depends(require_user),
        store: RecordStore = Depends(store_of),
    ):
        return store.update(identity.user_id, record_id, payload)

    @router.delete("/{record_id}", response_model=MessageOut)
    def delete_record(
        record_id: str,
        identity: Identity = Depends(require_user),
        store: RecordStore = Depends(store_of),
    ):
        return store.delete(identity.user_id, record_id)

    return router


customers_router = record_router("customers", "customers", CustomerIn, CustomerPatch, CustomerOut)
employees_router = record_router("employees", "employees", EmployeeIn, EmployeePatch, EmployeeOut)
products_router = record_router("products", "products", ProductIn, ProductPatch, ProductOut)
invoices_router = record_router("invoices", "invoices", InvoiceIn, InvoicePatch, InvoiceOut)


# ------------------ Dashboard ------------------
dashboard_router = APIRouter(prefix="/api", tags=["Dashboard"])


@dashboard_router.get("/dashboard", response_model=DashboardOut)
def dashboard(identity: Identity = Depends(require_user), service: DashboardService = Depends(get_dashboard)):
    return service.summary(identity.user_id)


@dashboard_router.get("/activities", response_model=List[Activity])
def activities(identity: Identity = Depends(require_user), service: DashboardService = Depends(get_dashboard)):
    return service.recent_activity(identity.user_id)


routers = [
    auth_router,
    customers_router,
    employees_router,
    products_router,
    invoices_router,
    dashboard_router,
]
