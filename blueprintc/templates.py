# File: blueprintc/templates.py
"""
Blueprintc - Built-in Reference Emitters
==========================================
Emitters that turn the ``ModelRegistry`` into a small Python web backend:

    1. ``models``      - SQLAlchemy 2.0 ORM models (``Mapped[]`` / ``mapped_column()``)
    2. ``schemas``     - Pydantic V2 schemas (Base / Create / Update / Read)
    3. ``controllers`` - FastAPI routers, one per action entity

All string assembly uses the ``List[str]`` + ``"\\n".join()`` pattern.  The
exact text produced here is not a contract: projects register their own
emitters through ``EmitterRegistry``.
"""

from __future__ import annotations

import keyword
import logging
from typing import Callable, Dict, List, Optional, Set, Tuple

from blueprintc.emitters import EmitterFactory, FileEmitter
from blueprintc.errors import GenerationError
from blueprintc.filesystem import FileSystem
from blueprintc.models import (
    ActionEntity,
    Column,
    CompilationOptions,
    Entity,
    ModelRegistry,
    Relationship,
    RelationshipKind,
)
from blueprintc.statements import (
    EloquentStatement,
    QueryStatement,
    RedirectStatement,
    RenderStatement,
    ResourceStatement,
    RespondStatement,
)
from blueprintc.utils import (
    build_import_block,
    class_basename,
    indent_lines,
    to_camel_case,
    to_plural,
    to_snake_case,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("blueprintc.templates")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_INDENT: str = "    "
_DOUBLE_INDENT: str = "        "

_HEADER_NOTE: str = "Generated by blueprintc."

# Canonical data type → (SQLAlchemy type expression, Python annotation)
_TYPE_MAP: Dict[str, Tuple[str, str]] = {
    "id": ("BigInteger", "int"),
    "bigIncrements": ("BigInteger", "int"),
    "increments": ("Integer", "int"),
    "mediumIncrements": ("Integer", "int"),
    "smallIncrements": ("SmallInteger", "int"),
    "tinyIncrements": ("SmallInteger", "int"),
    "bigInteger": ("BigInteger", "int"),
    "unsignedBigInteger": ("BigInteger", "int"),
    "integer": ("Integer", "int"),
    "unsignedInteger": ("Integer", "int"),
    "mediumInteger": ("Integer", "int"),
    "unsignedMediumInteger": ("Integer", "int"),
    "smallInteger": ("SmallInteger", "int"),
    "unsignedSmallInteger": ("SmallInteger", "int"),
    "tinyInteger": ("SmallInteger", "int"),
    "unsignedTinyInteger": ("SmallInteger", "int"),
    "year": ("SmallInteger", "int"),
    "boolean": ("Boolean", "bool"),
    "decimal": ("Numeric", "Decimal"),
    "unsignedDecimal": ("Numeric", "Decimal"),
    "double": ("Float", "float"),
    "float": ("Float", "float"),
    "string": ("String", "str"),
    "char": ("String", "str"),
    "text": ("Text", "str"),
    "mediumText": ("Text", "str"),
    "longText": ("Text", "str"),
    "enum": ("String", "str"),
    "set": ("String", "str"),
    "ipAddress": ("String(45)", "str"),
    "macAddress": ("String(17)", "str"),
    "rememberToken": ("String(100)", "str"),
    "binary": ("LargeBinary", "bytes"),
    "json": ("JSON", "Dict[str, Any]"),
    "jsonb": ("JSON", "Dict[str, Any]"),
    "date": ("Date", "date"),
    "dateTime": ("DateTime", "datetime"),
    "dateTimeTz": ("DateTime(timezone=True)", "datetime"),
    "timestamp": ("DateTime", "datetime"),
    "timestampTz": ("DateTime(timezone=True)", "datetime"),
    "time": ("Time", "time"),
    "timeTz": ("Time(timezone=True)", "time"),
    "uuid": ("Uuid", "UUID"),
    "ulid": ("String(26)", "str"),
}

_ON_DELETE: Dict[str, str] = {
    "cascade": "CASCADE",
    "restrict": "RESTRICT",
    "null": "SET NULL",
    "no_action": "NO ACTION",
}

_TO_MANY: Set[str] = {
    RelationshipKind.HAS_MANY.value,
    RelationshipKind.BELONGS_TO_MANY.value,
    RelationshipKind.MORPH_MANY.value,
    RelationshipKind.MORPH_TO_MANY.value,
    RelationshipKind.MORPHED_BY_MANY.value,
}

_POLYMORPHIC: Set[str] = {
    RelationshipKind.MORPH_ONE.value,
    RelationshipKind.MORPH_MANY.value,
    RelationshipKind.MORPH_TO.value,
    RelationshipKind.MORPH_TO_MANY.value,
    RelationshipKind.MORPHED_BY_MANY.value,
}

# Resource method → (HTTP verb, path suffix)
_ROUTES: Dict[str, Tuple[str, str]] = {
    "index": ("get", "/"),
    "create": ("get", "/create"),
    "store": ("post", "/"),
    "show": ("get", "/{id}"),
    "edit": ("get", "/{id}/edit"),
    "update": ("put", "/{id}"),
    "destroy": ("delete", "/{id}"),
    "__invoke": ("get", "/"),
}


def _python_type(column: Column) -> str:
    return _TYPE_MAP.get(column.data_type, ("String", "str"))[1]


def _sqlalchemy_type(column: Column) -> str:
    sa_type: str = _TYPE_MAP.get(column.data_type, ("String", "str"))[0]
    if sa_type in ("String", "Numeric") and column.attributes and column.data_type not in ("enum", "set"):
        return f"{sa_type}({', '.join(str(a) for a in column.attributes)})"
    if column.data_type in ("enum", "set") and column.attributes:
        width: int = max(len(str(a)) for a in column.attributes)
        return f"String({max(width, 1)})"
    return sa_type


def _type_imports(python_type: str, imports: Dict[str, Set[str]]) -> None:
    if python_type == "Decimal":
        imports.setdefault("decimal", set()).add("Decimal")
    elif python_type == "UUID":
        imports.setdefault("uuid", set()).add("UUID")
    elif python_type in ("date", "datetime", "time"):
        imports.setdefault("datetime", set()).add(python_type)
    elif python_type.startswith("Dict"):
        imports.setdefault("typing", set()).update({"Dict", "Any"})


def _module_name(name: str) -> str:
    return to_snake_case(class_basename(name))


def check_package(package: str) -> str:
    """
    Return *package* if every dotted segment is an importable module name.

    Raises:
        GenerationError: ``invalid_namespace`` naming the first bad segment.
    """
    for segment in package.split("."):
        if not segment:
            raise GenerationError.invalid_namespace(package, "empty package segment")
        if not segment.isidentifier() or keyword.iskeyword(segment):
            raise GenerationError.invalid_namespace(
                package, f"'{segment}' is not a valid module name"
            )
    return package


def _target_table(registry: ModelRegistry, target: str) -> str:
    entity: Optional[Entity] = registry.resolve_entity(target)
    if entity is not None:
        return entity.table_name
    return to_plural(to_snake_case(class_basename(target)))


def _relationship_attribute(relationship: Relationship) -> str:
    if relationship.kind == RelationshipKind.BELONGS_TO.value:
        return relationship.foreign_key_column[: -len("_id")]
    base: str = to_snake_case(relationship.alias or class_basename(relationship.target))
    return to_plural(base) if relationship.kind in _TO_MANY else base


def _pivot_table(owner: Entity, relationship: Relationship) -> str:
    names: List[str] = sorted(
        [to_snake_case(owner.class_name), to_snake_case(class_basename(relationship.target))]
    )
    return "_".join(names)


# ---------------------------------------------------------------------------
# 1. SQLAlchemy ORM models
# ---------------------------------------------------------------------------


class ModelEmitter(FileEmitter):
    """One ORM module per entity plus the shared declarative base."""

    CATEGORIES = ("models",)
    PRIORITY = 30

    def emit(self, registry: ModelRegistry, overwrite: bool) -> None:
        if not registry.entities:
            return
        check_package(self.options.models_package)
        self.create_or_update(self.output_path("models", "base.py"), self.render_base(), overwrite)
        for entity in registry.entities.values():
            path: str = self.output_path("models", f"{_module_name(entity.name)}.py")
            self.create_or_update(path, self.render_model(entity, registry), overwrite)
        self.create_or_update(
            self.output_path("models", "__init__.py"), self.render_package(registry), overwrite
        )

    def render_base(self) -> str:
        lines: List[str] = [
            '"""',
            "Declarative base and session dependency.",
            _HEADER_NOTE,
            '"""',
            "",
            "from __future__ import annotations",
            "",
            "import os",
            "from typing import Iterator",
            "",
            "from sqlalchemy import create_engine",
            "from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker",
            "",
            'engine = create_engine(os.environ.get("DATABASE_URL", "sqlite:///./app.db"))',
            "SessionLocal = sessionmaker(bind=engine, autoflush=False)",
            "",
            "",
            "class Base(DeclarativeBase):",
            f"{_INDENT}pass",
            "",
            "",
            "def get_db() -> Iterator[Session]:",
            f"{_INDENT}db = SessionLocal()",
            f"{_INDENT}try:",
            f"{_DOUBLE_INDENT}yield db",
            f"{_INDENT}finally:",
            f"{_DOUBLE_INDENT}db.close()",
            "",
        ]
        return "\n".join(lines)

    def render_package(self, registry: ModelRegistry) -> str:
        lines: List[str] = [f'"""ORM models. {_HEADER_NOTE}"""', ""]
        package: str = self.options.models_package
        lines.append(f"from {package}.base import Base, get_db")
        names: List[str] = ["Base", "get_db"]
        for entity in registry.entities.values():
            lines.append(f"from {package}.{_module_name(entity.name)} import {entity.class_name}")
            names.append(entity.class_name)
        lines.append("")
        lines.append("__all__ = [" + ", ".join(f'"{n}"' for n in names) + "]")
        lines.append("")
        return "\n".join(lines)

    def render_model(self, entity: Entity, registry: ModelRegistry) -> str:
        imports: Dict[str, Set[str]] = {
            "sqlalchemy.orm": {"Mapped", "mapped_column"},
            f"{self.options.models_package}.base": {"Base"},
        }
        body: List[str] = [f'__tablename__ = "{entity.table_name}"', ""]

        for column in entity.columns.values():
            body.append(self._column_line(entity, column, registry, imports))

        if entity.uses_timestamps:
            stamp_type: str = "DateTime(timezone=True)" if entity.timestamps_tz else "DateTime"
            imports.setdefault("sqlalchemy", set()).update({"DateTime", "func"})
            imports.setdefault("datetime", set()).add("datetime")
            imports.setdefault("typing", set()).add("Optional")
            body.append(
                f"created_at: Mapped[Optional[datetime]] = mapped_column({stamp_type}, server_default=func.now())"
            )
            body.append(
                f"updated_at: Mapped[Optional[datetime]] = mapped_column({stamp_type}, onupdate=func.now())"
            )
        if entity.uses_soft_delete:
            stamp_type = "DateTime(timezone=True)" if entity.soft_delete_tz else "DateTime"
            imports.setdefault("sqlalchemy", set()).add("DateTime")
            imports.setdefault("datetime", set()).add("datetime")
            imports.setdefault("typing", set()).add("Optional")
            body.append(
                f"deleted_at: Mapped[Optional[datetime]] = mapped_column({stamp_type}, nullable=True)"
            )

        relationship_lines: List[str] = []
        for relationship in entity.all_relationships():
            relationship_lines.append(self._relationship_line(entity, relationship, imports))
        if relationship_lines:
            body.append("")
            body.extend(relationship_lines)

        if entity.indexes:
            body.append("")
            args: List[str] = []
            for index in entity.indexes:
                columns: str = ", ".join(f'"{c}"' for c in index.columns)
                name: str = f"{entity.table_name}_{'_'.join(index.columns)}_{index.type}"
                if index.type == "unique":
                    imports.setdefault("sqlalchemy", set()).add("UniqueConstraint")
                    args.append(f'UniqueConstraint({columns}, name="{name}")')
                else:
                    imports.setdefault("sqlalchemy", set()).add("Index")
                    args.append(f'Index("{name}", {columns})')
            body.append("__table_args__ = (" + ", ".join(args) + ",)")

        lines: List[str] = [
            '"""',
            f"SQLAlchemy ORM model for {entity.name}.",
            _HEADER_NOTE,
            '"""',
            "",
            "from __future__ import annotations",
            "",
            build_import_block(imports),
            "",
            "",
            f"class {entity.class_name}(Base):",
        ]
        lines.extend(indent_lines(body))
        lines.append("")
        content: str = "\n".join(lines)
        logger.debug("Rendered ORM model for '%s'.", entity.name)
        return content

    def _column_line(
        self,
        entity: Entity,
        column: Column,
        registry: ModelRegistry,
        imports: Dict[str, Set[str]],
    ) -> str:
        python_type: str = _python_type(column)
        sa_type: str = _sqlalchemy_type(column)
        _type_imports(python_type, imports)

        args: List[str] = []
        foreign: Optional[Relationship] = next(
            (r for r in entity.belongs_to if r.foreign_key_column == column.name), None
        )
        if foreign is not None and (self.options.use_constraints or column.is_foreign_key):
            imports.setdefault("sqlalchemy", set()).add("ForeignKey")
            reference: str = f"{_target_table(registry, foreign.target)}.{foreign.key or 'id'}"
            ondelete: str = column.modifier_value("onDelete") or self.options.on_delete
            action: str = _ON_DELETE.get(ondelete.replace(" ", "_").lower(), ondelete.upper())
            args.append(f'ForeignKey("{reference}", ondelete="{action}")')
        else:
            imports.setdefault("sqlalchemy", set()).add(sa_type.split("(")[0])
            args.append(sa_type)

        if column.name == "id" or column.has_modifier("primary"):
            args.append("primary_key=True")
        if column.has_modifier("autoIncrement"):
            args.append("autoincrement=True")
        if column.is_nullable:
            args.append("nullable=True")
        if column.has_modifier("unique"):
            args.append("unique=True")
        if column.has_modifier("index"):
            args.append("index=True")
        default: Optional[str] = column.modifier_value("default")
        if default is not None:
            args.append(f"default={default!r}")
        comment: Optional[str] = column.modifier_value("comment")
        if comment is not None:
            args.append(f"comment={comment!r}")

        annotation: str = python_type
        if column.is_nullable:
            imports.setdefault("typing", set()).add("Optional")
            annotation = f"Optional[{python_type}]"
        return f"{column.name}: Mapped[{annotation}] = mapped_column({', '.join(args)})"

    def _relationship_line(
        self, entity: Entity, relationship: Relationship, imports: Dict[str, Set[str]]
    ) -> str:
        attribute: str = _relationship_attribute(relationship)
        if relationship.kind in _POLYMORPHIC:
            return f"# {relationship.kind} {relationship.reference}: polymorphic, map manually"

        imports.setdefault("sqlalchemy.orm", set()).add("relationship")
        target: str = class_basename(relationship.target)
        args: List[str] = [f'"{target}"']
        if relationship.kind == RelationshipKind.BELONGS_TO_MANY.value:
            args.append(f'secondary="{_pivot_table(entity, relationship)}"')
        if relationship.kind in _TO_MANY:
            imports.setdefault("typing", set()).add("List")
            annotation: str = f'Mapped[List["{target}"]]'
        else:
            imports.setdefault("typing", set()).add("Optional")
            annotation = f'Mapped[Optional["{target}"]]'
        return f"{attribute}: {annotation} = relationship({', '.join(args)})"


# ---------------------------------------------------------------------------
# 2. Pydantic V2 schemas
# ---------------------------------------------------------------------------


class SchemaEmitter(FileEmitter):
    """Base / Create / Update / Read schemas per entity."""

    CATEGORIES = ("schemas",)
    PRIORITY = 20

    def emit(self, registry: ModelRegistry, overwrite: bool) -> None:
        for entity in registry.entities.values():
            path: str = self.output_path("schemas", f"{_module_name(entity.name)}.py")
            self.create_or_update(path, self.render_schemas(entity), overwrite)

    def render_schemas(self, entity: Entity) -> str:
        imports: Dict[str, Set[str]] = {
            "pydantic": {"BaseModel", "ConfigDict"},
            "typing": {"Optional"},
        }
        name: str = entity.class_name
        fields: List[Column] = [c for c in entity.columns.values() if c.name != "id"]

        base: List[str] = [f"class {name}Base(BaseModel):"]
        base.append(f"{_INDENT}model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)")
        if fields:
            base.append("")
        for column in fields:
            annotation: str = self._annotation(column, imports)
            if column.is_nullable:
                base.append(f"{_INDENT}{column.name}: Optional[{annotation}] = None")
            else:
                base.append(f"{_INDENT}{column.name}: {annotation}")

        create: List[str] = [f"class {name}Create({name}Base):", f"{_INDENT}pass"]

        update: List[str] = [f"class {name}Update(BaseModel):"]
        update.append(f"{_INDENT}model_config = ConfigDict(str_strip_whitespace=True)")
        if fields:
            update.append("")
        for column in fields:
            update.append(f"{_INDENT}{column.name}: Optional[{self._annotation(column, imports)}] = None")

        read: List[str] = [f"class {name}Read({name}Base):"]
        key: Optional[Column] = entity.columns.get("id")
        if key is not None:
            read.append(f"{_INDENT}id: {self._annotation(key, imports)}")
        if entity.uses_timestamps:
            imports.setdefault("datetime", set()).add("datetime")
            read.append(f"{_INDENT}created_at: Optional[datetime] = None")
            read.append(f"{_INDENT}updated_at: Optional[datetime] = None")
        if entity.uses_soft_delete:
            imports.setdefault("datetime", set()).add("datetime")
            read.append(f"{_INDENT}deleted_at: Optional[datetime] = None")
        if len(read) == 1:
            read.append(f"{_INDENT}pass")

        lines: List[str] = [
            '"""',
            f"Pydantic V2 schemas for {entity.name}.",
            _HEADER_NOTE,
            '"""',
            "",
            "from __future__ import annotations",
            "",
            build_import_block(imports),
        ]
        for block in (base, create, update, read):
            lines.extend(["", ""])
            lines.extend(block)
        lines.append("")
        return "\n".join(lines)

    @staticmethod
    def _annotation(column: Column, imports: Dict[str, Set[str]]) -> str:
        if column.data_type in ("enum", "set") and column.attributes:
            imports.setdefault("typing", set()).add("Literal")
            return "Literal[" + ", ".join(repr(str(a)) for a in column.attributes) + "]"
        python_type: str = _python_type(column)
        _type_imports(python_type, imports)
        return python_type


# ---------------------------------------------------------------------------
# 3. FastAPI routers
# ---------------------------------------------------------------------------


class RouterEmitter(FileEmitter):
    """One FastAPI router per action entity; statements become endpoint bodies."""

    CATEGORIES = ("controllers", "routers")
    PRIORITY = 10

    def emit(self, registry: ModelRegistry, overwrite: bool) -> None:
        if registry.action_entities:
            check_package(self.options.models_package)
            check_package(self.options.schemas_package)
        for action in registry.action_entities.values():
            path: str = self.output_path("routers", f"{to_snake_case(action.prefix)}.py")
            self.create_or_update(path, self.render_router(action, registry), overwrite)

    def render_router(self, action: ActionEntity, registry: ModelRegistry) -> str:
        entity: Optional[Entity] = registry.model_for_context(action.model_name)
        model: str = entity.class_name if entity is not None else action.model_name
        module: str = _module_name(entity.name) if entity is not None else to_snake_case(model)

        imports: Dict[str, Set[str]] = {
            "fastapi": {"APIRouter", "Depends"},
            "sqlalchemy.orm": {"Session"},
            f"{self.options.models_package}.base": {"get_db"},
        }
        if entity is not None:
            imports[f"{self.options.models_package}.{module}"] = {model}

        segment: str = to_snake_case(action.prefix).replace("_", "-")
        if self.options.plural_routes:
            segment = to_plural(to_snake_case(model)).replace("_", "-")
        route_base: str = to_camel_case(to_plural(model))

        endpoints: List[str] = []
        for method, statements in action.methods.items():
            endpoints.extend(["", ""])
            endpoints.extend(
                self._endpoint(method, statements, model, entity, route_base, imports)
            )

        lines: List[str] = [
            '"""',
            f"FastAPI router for {action.name}.",
            _HEADER_NOTE,
            '"""',
            "",
            "from __future__ import annotations",
            "",
            build_import_block(imports),
            "",
            f'router = APIRouter(prefix="/{segment}", tags=["{segment}"])',
        ]
        lines.extend(endpoints)
        lines.append("")
        content: str = "\n".join(lines)
        logger.debug("Rendered router for '%s' (%d methods).", action.name, len(action.methods))
        return content

    def _endpoint(
        self,
        method: str,
        statements: List[object],
        model: str,
        entity: Optional[Entity],
        route_base: str,
        imports: Dict[str, Set[str]],
    ) -> List[str]:
        verb, path = _ROUTES.get(method, ("post", f"/{to_snake_case(method).replace('_', '-')}"))
        function: str = "invoke" if method == "__invoke" else to_snake_case(method)
        singular: str = to_snake_case(model)

        params: List[str] = []
        if "{id}" in path:
            params.append("id: int")
        if method in ("store", "update") and entity is not None:
            schema: str = f"{model}Create" if method == "store" else f"{model}Update"
            imports.setdefault(f"{self.options.schemas_package}.{_module_name(entity.name)}", set()).add(schema)
            params.append(f"payload: {schema}")
        params.append("db: Session = Depends(get_db)")

        status: str = ", status_code=201" if method == "store" else ""
        lines: List[str] = [
            f'@router.{verb}("{path}", name="{route_base}.{function}"{status})',
            f"def {function}({', '.join(params)}):",
        ]
        body: List[str] = []
        if "{id}" in path and entity is not None:
            imports["fastapi"].add("HTTPException")
            body.extend(
                [
                    f"{singular} = db.get({model}, id)",
                    f"if {singular} is None:",
                    f'{_INDENT}raise HTTPException(status_code=404, detail="{model} not found")',
                ]
            )
        for statement in statements:
            body.extend(self._statement_lines(statement, model, singular, entity, imports))
        if not any(line.startswith("return") for line in body):
            body.append("return None")
        lines.extend(indent_lines(body))
        return lines

    def _statement_lines(
        self,
        statement: object,
        model: str,
        singular: str,
        entity: Optional[Entity],
        imports: Dict[str, Set[str]],
    ) -> List[str]:
        renderer: Optional[Callable[..., List[str]]] = _STATEMENT_RENDERERS.get(type(statement))
        comment: str = f"# {statement.describe()}"  # type: ignore[attr-defined]
        if renderer is None or entity is None:
            return [comment]
        return [comment] + renderer(statement, model, singular, imports)


def _render_query(stmt: QueryStatement, model: str, singular: str, imports: Dict[str, Set[str]]) -> List[str]:
    target: str = class_basename(stmt.model) if stmt.model else model
    variable: str = to_snake_case(to_plural(target))
    imports.setdefault("sqlalchemy", set()).add("select")
    if stmt.operation == "count":
        imports["sqlalchemy"].add("func")
        return [f"{variable}_count = db.scalar(select(func.count()).select_from({model}))"]
    if stmt.operation == "exists":
        return [f"{variable}_exist = db.scalars(select({model}).limit(1)).first() is not None"]
    return [f"{variable} = db.scalars(select({model})).all()"]


def _render_eloquent(stmt: EloquentStatement, model: str, singular: str, imports: Dict[str, Set[str]]) -> List[str]:
    if stmt.operation == "save":
        return [
            f"{singular} = {model}(**payload.model_dump())",
            f"db.add({singular})",
            "db.commit()",
            f"db.refresh({singular})",
        ]
    if stmt.operation == "update":
        return [
            "for field, value in payload.model_dump(exclude_unset=True).items():",
            f"{_INDENT}setattr({singular}, field, value)",
            "db.commit()",
        ]
    if stmt.operation == "delete":
        return [f"db.delete({singular})", "db.commit()"]
    return [f"{singular} = db.get({model}, id)"]


def _render_render(stmt: RenderStatement, model: str, singular: str, imports: Dict[str, Set[str]]) -> List[str]:
    data: str = ", ".join(f'"{item}": {to_snake_case(item)}' for item in stmt.data)
    return [f'return {{"view": "{stmt.view}", "data": {{{data}}}}}']


def _render_redirect(stmt: RedirectStatement, model: str, singular: str, imports: Dict[str, Set[str]]) -> List[str]:
    imports.setdefault("fastapi.responses", set()).add("RedirectResponse")
    return [f'return RedirectResponse(url=router.url_path_for("{stmt.route}"), status_code=303)']


def _render_respond(stmt: RespondStatement, model: str, singular: str, imports: Dict[str, Set[str]]) -> List[str]:
    if stmt.status is not None:
        imports.setdefault("fastapi", set()).add("Response")
        return [f"return Response(status_code={stmt.status})"]
    return [f"return {to_snake_case(stmt.content or singular)}"]


def _render_resource(stmt: ResourceStatement, model: str, singular: str, imports: Dict[str, Set[str]]) -> List[str]:
    variable: str = to_snake_case(stmt.reference)
    if stmt.collection or stmt.paginate:
        return [f"return [item for item in {variable}]"]
    return [f"return {variable}"]


_STATEMENT_RENDERERS: Dict[type, Callable[..., List[str]]] = {
    QueryStatement: _render_query,
    EloquentStatement: _render_eloquent,
    RenderStatement: _render_render,
    RedirectStatement: _render_redirect,
    RespondStatement: _render_respond,
    ResourceStatement: _render_resource,
}


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


def default_emitter_factories() -> Dict[str, EmitterFactory]:
    """Category → factory table for the built-in emitters."""

    def _factory(cls: type) -> EmitterFactory:
        def build(filesystem: FileSystem, options: CompilationOptions) -> FileEmitter:
            return cls(filesystem, options)

        return build

    return {
        "models": _factory(ModelEmitter),
        "schemas": _factory(SchemaEmitter),
        "controllers": _factory(RouterEmitter),
    }


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ModelEmitter",
    "SchemaEmitter",
    "RouterEmitter",
    "default_emitter_factories",
    "check_package",
]

logger.debug("blueprintc.templates loaded — %d public symbols.", len(__all__))
