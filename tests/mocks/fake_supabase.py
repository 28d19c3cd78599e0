"""
In-memory stand-in for the supabase-py Client used by the API tests.
Supports the query builder subset the services call: filters, or_ expressions,
ordering, paging, upsert on conflict columns, RPC results and text search.
"""
import copy
import re
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional


class FakeAPIError(Exception):
    pass


class FakeResponse:
    def __init__(self, data: Any, count: Optional[int] = None):
        self.data = data
        self.count = count


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _coerce(value: str) -> Any:
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if lowered == "null":
        return None
    return value


def _equal(actual: Any, expected: Any) -> bool:
    if isinstance(expected, str) and not isinstance(actual, str) and actual is not None:
        return str(actual).lower() == expected.lower()
    return actual == expected


def _ilike(actual: Any, pattern: str) -> bool:
    if actual is None:
        return False
    regex = "^" + re.escape(pattern).replace("%", ".*").replace("_", ".") + "$"
    return re.match(regex, str(actual), re.IGNORECASE | re.DOTALL) is not None


def _split_top_level(expression: str) -> List[str]:
    parts, depth, current = [], 0, ""
    for char in expression:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            parts.append(current)
            current = ""
        else:
            current += char
    if current:
        parts.append(current)
    return parts


def _parse_condition(term: str) -> Callable[[Dict[str, Any]], bool]:
    term = term.strip()
    if term.startswith("and(") and term.endswith(")"):
        inner = [_parse_condition(t) for t in _split_top_level(term[4:-1])]
        return lambda row: all(cond(row) for cond in inner)
    if term.startswith("or(") and term.endswith(")"):
        inner = [_parse_condition(t) for t in _split_top_level(term[3:-1])]
        return lambda row: any(cond(row) for cond in inner)
    column, op, value = term.split(".", 2)
    if op == "eq":
        return lambda row: _equal(row.get(column), _coerce(value))
    if op == "neq":
        return lambda row: not _equal(row.get(column), _coerce(value))
    if op in ("ilike", "like"):
        return lambda row: _ilike(row.get(column), value)
    if op == "is":
        return lambda row: row.get(column) is _coerce(value)
    if op == "in":
        options = [_coerce(v.strip()) for v in value.strip("()").split(",")]
        return lambda row: any(_equal(row.get(column), option) for option in options)
    raise ValueError(f"Unsupported filter operator: {op}")


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str, rows: Optional[List[Dict[str, Any]]] = None):
        self.db = db
        self.table_name = table
        self._rows = rows
        self.operation = "select"
        self.payload: Any = None
        self.on_conflict: Optional[str] = None
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self.order_by: List[tuple] = []
        self._limit: Optional[int] = None
        self._offset = 0
        self._single = False
        self._maybe_single = False
        self._count = None

    # operations
    def select(self, columns: str = "*", count: Optional[str] = None):
        self.operation = "select"
        self._count = count
        return self

    def insert(self, data):
        self.operation = "insert"
        self.payload = data
        return self

    def update(self, data):
        self.operation = "update"
        self.payload = data
        return self

    def upsert(self, data, on_conflict: str = ""):
        self.operation = "upsert"
        self.payload = data
        self.on_conflict = on_conflict
        return self

    def delete(self):
        self.operation = "delete"
        return self

    # filters
    def eq(self, column: str, value: Any):
        self.filters.append(lambda row: _equal(row.get(column), value))
        return self

    def neq(self, column: str, value: Any):
        self.filters.append(lambda row: not _equal(row.get(column), value))
        return self

    def in_(self, column: str, values: List[Any]):
        self.filters.append(lambda row: any(_equal(row.get(column), v) for v in values))
        return self

    def is_(self, column: str, value: Any):
        expected = _coerce(value) if isinstance(value, str) else value
        self.filters.append(lambda row: row.get(column) is expected)
        return self

    def ilike(self, column: str, pattern: str):
        self.filters.append(lambda row: _ilike(row.get(column), pattern))
        return self

    def or_(self, expression: str):
        conditions = [_parse_condition(term) for term in _split_top_level(expression)]
        self.filters.append(lambda row: any(cond(row) for cond in conditions))
        return self

    def text_search(self, column: str, query: str, options: Optional[Dict[str, Any]] = None):
        terms = [t.lower() for t in re.findall(r"\w+", query)]
        self.filters.append(lambda row: any(t in str(row.get(column) or "").lower() for t in terms))
        return self

    # modifiers
    def order(self, column: str, desc: bool = False):
        self.order_by.append((column, desc))
        return self

    def limit(self, count: int):
        self._limit = count
        return self

    def offset(self, count: int):
        self._offset = count
        return self

    def single(self):
        self._single = True
        return self

    def maybe_single(self):
        self._maybe_single = True
        return self

    def _matching(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [row for row in rows if all(f(row) for f in self.filters)]

    def _shape(self, rows: List[Dict[str, Any]]):
        total = len(rows)
        for column, desc in reversed(self.order_by):
            rows = sorted(
                rows,
                key=lambda r: (r.get(column) is None, r.get(column) if r.get(column) is not None else ""),
                reverse=desc,
            )
        rows = rows[self._offset:]
        if self._limit is not None:
            rows = rows[:self._limit]
        rows = copy.deepcopy(rows)
        if self._single:
            if len(rows) != 1:
                raise FakeAPIError("JSON object requested, multiple (or no) rows returned")
            return FakeResponse(rows[0], total)
        if self._maybe_single:
            if not rows:
                return None
            return FakeResponse(rows[0], total)
        return FakeResponse(rows, total if self._count else None)

    def _new_row(self, data: Dict[str, Any]) -> Dict[str, Any]:
        row = copy.deepcopy(data)
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", _now())
        row.setdefault("updated_at", row["created_at"])
        for column, value in self.db.defaults.get(self.table_name, {}).items():
            row.setdefault(column, copy.deepcopy(value))
        return row

    def execute(self):
        if self.table_name in self.db.failing_tables:
            raise FakeAPIError(f"simulated failure on {self.table_name}")
        self.db.calls.append((self.table_name, self.operation))

        if self._rows is not None:
            return self._shape(self._matching(self._rows))

        table = self.db.tables.setdefault(self.table_name, [])
        if self.operation == "select":
            return self._shape(self._matching(table))

        if self.operation == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            created = [self._new_row(item) for item in items]
            table.extend(created)
            return FakeResponse(copy.deepcopy(created))

        if self.operation == "update":
            updated = []
            for row in self._matching(table):
                row.update(copy.deepcopy(self.payload))
                updated.append(copy.deepcopy(row))
            return FakeResponse(updated)

        if self.operation == "delete":
            removed = self._matching(table)
            self.db.tables[self.table_name] = [row for row in table if row not in removed]
            return FakeResponse(copy.deepcopy(removed))

        if self.operation == "upsert":
            keys = [k.strip() for k in (self.on_conflict or "id").split(",")]
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            saved = []
            for item in items:
                existing = next(
                    (row for row in table if all(row.get(k) == item.get(k) for k in keys)),
                    None,
                )
                if existing is not None:
                    existing.update(copy.deepcopy(item))
                    saved.append(copy.deepcopy(existing))
                else:
                    row = self._new_row(item)
                    table.append(row)
                    saved.append(copy.deepcopy(row))
            return FakeResponse(saved)

        raise ValueError(f"Unsupported operation {self.operation}")


class FakeBucket:
    def __init__(self, storage: "FakeStorage", name: str):
        self.storage = storage
        self.name = name

    def upload(self, path: str, content: bytes, file_options: Optional[Dict[str, Any]] = None):
        self.storage.objects[f"{self.name}/{path}"] = content
        return SimpleNamespace(path=path)

    def remove(self, paths: List[str]):
        for path in paths:
            self.storage.objects.pop(f"{self.name}/{path}", None)
        return [{"name": p} for p in paths]

    def get_public_url(self, path: str) -> str:
        return f"https://storage.test/{self.name}/{path}"


class FakeStorage:
    def __init__(self):
        self.objects: Dict[str, bytes] = {}

    def from_(self, bucket: str) -> FakeBucket:
        return FakeBucket(self, bucket)


class FakeAuth:
    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.tokens: Dict[str, str] = {}
        self.get_user_calls = 0
        self.signed_out = 0

    def _user(self, record: Dict[str, Any]):
        return SimpleNamespace(
            id=record["id"],
            email=record["email"],
            user_metadata=record.get("user_metadata", {}),
            app_metadata={},
        )

    def add_user(self, email: str, password: str, user_id: Optional[str] = None, token: Optional[str] = None):
        record = {"id": user_id or str(uuid.uuid4()), "email": email, "password": password}
        self.users[email] = record
        if token:
            self.tokens[token] = email
        return record

    def sign_up(self, credentials: Dict[str, Any]):
        if credentials["email"] in self.users:
            raise FakeAPIError("User already registered")
        record = self.add_user(credentials["email"], credentials["password"])
        record["user_metadata"] = credentials.get("options", {}).get("data", {})
        return SimpleNamespace(user=self._user(record), session=None)

    def sign_in_with_password(self, credentials: Dict[str, Any]):
        record = self.users.get(credentials["email"])
        if not record or record["password"] != credentials["password"]:
            raise FakeAPIError("Invalid login credentials")
        token = f"token-{record['id']}"
        self.tokens[token] = record["email"]
        session = SimpleNamespace(access_token=token, refresh_token=f"refresh-{record['id']}")
        return SimpleNamespace(user=self._user(record), session=session)

    def get_user(self, jwt: str):
        self.get_user_calls += 1
        email = self.tokens.get(jwt)
        if not email:
            raise FakeAPIError("invalid JWT: unable to parse or verify signature")
        return SimpleNamespace(user=self._user(self.users[email]))

    def sign_out(self):
        self.signed_out += 1


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.defaults: Dict[str, Dict[str, Any]] = {}
        self.rpc_results: Dict[str, List[Dict[str, Any]]] = {}
        self.rpc_calls: List[tuple] = []
        self.failing_tables: set = set()
        self.calls: List[tuple] = []
        self.auth = FakeAuth()
        self.storage = FakeStorage()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Dict[str, Any]) -> FakeQuery:
        self.rpc_calls.append((name, params))
        rows = self.rpc_results.get(name, [])
        query = FakeQuery(self, f"rpc:{name}", rows=rows)
        query._limit = params.get("match_count")
        return query

    def seed(self, table: str, *rows: Dict[str, Any]) -> List[Dict[str, Any]]:
        created = self.table(table).insert(list(rows)).execute().data
        return created
