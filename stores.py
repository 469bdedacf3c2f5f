import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Type, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from pymongo import DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from errors import ConflictError, NotFoundError, ValidationError
from schemas import (
    CustomerIn,
    CustomerPatch,
    EmployeeIn,
    EmployeePatch,
    InvoiceIn,
    InvoicePatch,
    PatchModel,
    ProductIn,
    ProductPatch,
    RecordModel,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def oid(id_str: Any) -> Optional[ObjectId]:
    if isinstance(id_str, ObjectId):
        return id_str
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        return None


def serialize(doc: Dict[str, Any]) -> Dict[str, Any]:
    if not doc:
        return doc
    d = {**doc}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    for k, v in list(d.items()):
        if isinstance(v, ObjectId):
            d[k] = str(v)
        elif isinstance(v, datetime) and v.tzinfo is None:
            # BSON dates are UTC; clients built without tz_aware hand them back naive.
            d[k] = v.replace(tzinfo=timezone.utc)
    return d


def _validate(model: Type[BaseModel], fields: Union[BaseModel, Mapping[str, Any]]) -> Any:
    if isinstance(fields, model):
        return fields
    if isinstance(fields, BaseModel):
        fields = fields.model_dump(by_alias=True, exclude_unset=True)
    try:
        return model.model_validate(fields)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        where = ".".join(str(p) for p in first["loc"]) or "body"
        raise ValidationError(f"{where}: {first['msg']}")


class UserStore:
    """Credential store: one document per registered user, unique by email."""

    def __init__(self, db: Database, clock: Clock = now_utc):
        self.collection: Collection = db["user"]
        self.clock = clock

    def create(self, name: str, email: str, password_hash: str) -> Dict[str, Any]:
        doc = {"name": name, "email": email, "passwordHash": password_hash, "createdAt": self.clock()}
        try:
            res = self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise ConflictError("Email already exists")
        doc["_id"] = res.inserted_id
        return doc

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return self.collection.find_one({"email": email})

    def get(self, user_id: str) -> Dict[str, Any]:
        key = oid(user_id)
        doc = self.collection.find_one({"_id": key}) if key is not None else None
        if not doc:
            raise NotFoundError("User not found")
        return doc


class RecordStore:
    """CRUD over one collection of owner-scoped records.

    Every query filters on ``ownerId`` and every insert stamps it from the
    caller's identity, so a record id belonging to someone else behaves
    exactly like an id that does not exist.
    """

    def __init__(
        self,
        collection: Collection,
        label: str,
        create_model: Type[RecordModel],
        patch_model: Type[PatchModel],
        search_fields: Sequence[str] = (),
        clock: Clock = now_utc,
    ):
        self.collection = collection
        self.label = label
        self.create_model = create_model
        self.patch_model = patch_model
        self.search_fields = tuple(search_fields)
        self.clock = clock

    def _scope(self, owner_id: str) -> Dict[str, Any]:
        key = oid(owner_id)
        if key is None:
            raise NotFoundError(f"{self.label} not found")
        return {"ownerId": key}

    def _lookup(self, owner_id: str, record_id: str) -> Dict[str, Any]:
        key = oid(record_id)
        if key is None:
            raise NotFoundError(f"{self.label} not found")
        return {"_id": key, **self._scope(owner_id)}

    def list(self, owner_id: str, q: Optional[str] = None) -> List[Dict[str, Any]]:
        filt = self._scope(owner_id)
        if q and self.search_fields:
            pattern = re.escape(q)
            filt["$or"] = [{f: {"$regex": pattern, "$options": "i"}} for f in self.search_fields]
        cur = self.collection.find(filt).sort("createdAt", DESCENDING)
        return [serialize(doc) for doc in cur]

    def recent(self, owner_id: str, limit: int) -> List[Dict[str, Any]]:
        cur = self.collection.find(self._scope(owner_id)).sort("createdAt", DESCENDING).limit(limit)
        return [serialize(doc) for doc in cur]

    def count(self, owner_id: str, **match: Any) -> int:
        return self.collection.count_documents({**self._scope(owner_id), **match})

    def create(self, owner_id: str, fields: Union[BaseModel, Mapping[str, Any]]) -> Dict[str, Any]:
        payload = _validate(self.create_model, fields)
        data = payload.to_document()
        data.update(self._scope(owner_id))
        data["createdAt"] = self.clock()
        res = self.collection.insert_one(data)
        data["_id"] = res.inserted_id
        logger.info("Created %s %s for owner %s", self.label.lower(), res.inserted_id, owner_id)
        return serialize(data)

    def update(self, owner_id: str, record_id: str, fields: Union[BaseModel, Mapping[str, Any]]) -> Dict[str, Any]:
        patch = _validate(self.patch_model, fields)
        filt = self._lookup(owner_id, record_id)
        changes = patch.changes()
        if changes:
            doc = self.collection.find_one_and_update(
                filt, {"$set": changes}, return_document=ReturnDocument.AFTER
            )
        else:
            doc = self.collection.find_one(filt)
        if not doc:
            raise NotFoundError(f"{self.label} not found")
        return serialize(doc)

    def delete(self, owner_id: str, record_id: str) -> Dict[str, str]:
        res = self.collection.delete_one(self._lookup(owner_id, record_id))
        if res.deleted_count == 0:
            raise NotFoundError(f"{self.label} not found")
        logger.info("Deleted %s %s for owner %s", self.label.lower(), record_id, owner_id)
        return {"message": f"{self.label} deleted"}


class Stores:
    def __init__(self, db: Database, clock: Clock = now_utc):
        self.users = UserStore(db, clock=clock)
        self.customers = RecordStore(
            db["customer"], "Customer", CustomerIn, CustomerPatch,
            search_fields=("name", "email", "phone", "location"), clock=clock,
        )
        self.employees = RecordStore(
            db["employee"], "Employee", EmployeeIn, EmployeePatch,
            search_fields=("name", "email", "position"), clock=clock,
        )
        self.products = RecordStore(
            db["product"], "Product", ProductIn, ProductPatch,
            search_fields=("name", "sku", "category"), clock=clock,
        )
        self.invoices = RecordStore(
            db["invoice"], "Invoice", InvoiceIn, InvoicePatch,
            search_fields=("recipient",), clock=clock,
        )
