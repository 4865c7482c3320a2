"""
tests/test_templates.py
Tests for the built-in reference emitters in blueprintc.templates.

The exact text is not a contract, so these tests look for the lines that
matter and check every rendered module is valid Python.
"""

from __future__ import annotations

import pytest

from blueprintc.errors import GenerationError
from blueprintc.models import CompilationOptions
from blueprintc.templates import (
    ModelEmitter,
    RouterEmitter,
    SchemaEmitter,
    check_package,
    default_emitter_factories,
)


def assert_valid_python(source: str) -> None:
    compile(source, "<generated>", "exec")


@pytest.fixture()
def example_registry(analyze, example_draft):
    return analyze(example_draft)


# ===========================================================================
# Models
# ===========================================================================


class TestModelEmitter:
    def test_post_model(self, analyze, blog_draft, memory_fs) -> None:
        registry = analyze(blog_draft)
        text = ModelEmitter(memory_fs).render_model(registry.entities["Post"], registry)
        assert "class Post(Base):" in text
        assert '__tablename__ = "posts"' in text
        assert "id: Mapped[int] = mapped_column(BigInteger, primary_key=True)" in text
        assert "author_id: Mapped[int] = mapped_column(BigInteger)" in text
        assert 'author: Mapped[Optional["User"]] = relationship("User")' in text
        assert "created_at" in text
        assert_valid_python(text)

    def test_foreign_keys_with_constraints(self, analyze, blog_draft, memory_fs) -> None:
        registry = analyze(blog_draft)
        emitter = ModelEmitter(memory_fs, CompilationOptions(use_constraints=True, on_delete="null"))
        text = emitter.render_model(registry.entities["Post"], registry)
        assert 'ForeignKey("users.id", ondelete="SET NULL")' in text

    def test_example_models(self, example_registry, memory_fs) -> None:
        emitter = ModelEmitter(memory_fs)
        post = emitter.render_model(example_registry.entities["Post"], example_registry)
        assert "title: Mapped[str] = mapped_column(String(400))" in post
        assert "content: Mapped[str] = mapped_column(Text)" in post
        assert "status: Mapped[str] = mapped_column(String(9), default='draft')" in post
        assert "published_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)" in post
        assert "deleted_at" in post
        assert_valid_python(post)

        user = emitter.render_model(example_registry.entities["User"], example_registry)
        assert "email: Mapped[str] = mapped_column(String, unique=True)" in user
        assert 'posts: Mapped[List["Post"]] = relationship("Post")' in user
        assert_valid_python(user)

    def test_indexes(self, analyze, memory_fs) -> None:
        registry = analyze(
            "models:\n  Post:\n    slug: string\n    indexes:\n      - unique: slug\n"
        )
        text = ModelEmitter(memory_fs).render_model(registry.entities["Post"], registry)
        assert '__table_args__ = (UniqueConstraint("slug", name="posts_slug_unique"),)' in text
        assert_valid_python(text)

    def test_polymorphic_relationship_is_a_comment(self, analyze, memory_fs) -> None:
        registry = analyze("models:\n  Image:\n    morphTo: imageable\n")
        text = ModelEmitter(memory_fs).render_model(registry.entities["Image"], registry)
        assert "# morphTo imageable: polymorphic, map manually" in text

    def test_package_module(self, analyze, blog_draft, memory_fs) -> None:
        text = ModelEmitter(memory_fs).render_package(analyze(blog_draft))
        assert "from app.models.post import Post" in text
        assert '__all__ = ["Base", "get_db", "Post", "User"]' in text
        assert_valid_python(text)

    def test_base_module(self, memory_fs) -> None:
        assert_valid_python(ModelEmitter(memory_fs).render_base())

    def test_nothing_written_without_entities(self, analyze, memory_fs) -> None:
        registry = analyze("controllers:\n  Report:\n    invokable: true\n")
        assert ModelEmitter(memory_fs).output(registry) == {}
        assert len(memory_fs) == 0


# ===========================================================================
# Schemas
# ===========================================================================


class TestSchemaEmitter:
    def test_post_schemas(self, example_registry, memory_fs) -> None:
        text = SchemaEmitter(memory_fs).render_schemas(example_registry.entities["Post"])
        for name in ("PostBase(BaseModel)", "PostCreate(PostBase)", "PostUpdate(BaseModel)", "PostRead(PostBase)"):
            assert f"class {name}:" in text
        assert "    title: str" in text
        assert "    status: Literal['draft', 'published']" in text
        assert "    published_at: Optional[datetime] = None" in text
        assert "    deleted_at: Optional[datetime] = None" in text
        assert_valid_python(text)

    def test_paths(self, example_registry, memory_fs) -> None:
        output = SchemaEmitter(memory_fs).output(example_registry)
        assert output == {
            "created": ["app/schemas/user.py", "app/schemas/post.py", "app/schemas/comment.py"]
        }


# ===========================================================================
# Routers
# ===========================================================================


class TestRouterEmitter:
    def test_controller_router(self, analyze, controller_draft, memory_fs) -> None:
        registry = analyze(controller_draft)
        text = RouterEmitter(memory_fs).render_router(registry.action_entities["Post"], registry)
        assert 'router = APIRouter(prefix="/posts", tags=["posts"])' in text
        assert '@router.get("/", name="posts.index")' in text
        assert "posts = db.scalars(select(Post)).all()" in text
        assert 'return {"view": "post.index", "data": {"posts": posts}}' in text
        assert '@router.post("/", name="posts.store", status_code=201)' in text
        assert "def store(payload: PostCreate, db: Session = Depends(get_db)):" in text
        assert "post = Post(**payload.model_dump())" in text
        assert_valid_python(text)

    def test_api_resource_router(self, example_registry, memory_fs) -> None:
        text = RouterEmitter(memory_fs).render_router(
            example_registry.action_entities["Api/Comment"], example_registry
        )
        assert '@router.delete("/{id}", name="comments.destroy")' in text
        assert 'raise HTTPException(status_code=404, detail="Comment not found")' in text
        assert "return Response(status_code=204)" in text
        assert_valid_python(text)

    def test_unknown_model_renders_comments(self, analyze, memory_fs) -> None:
        registry = analyze("controllers:\n  Report:\n    invokable: true\n")
        text = RouterEmitter(memory_fs).render_router(registry.action_entities["Report"], registry)
        assert "def invoke(db: Session = Depends(get_db)):" in text
        assert "# render view report" in text
        assert_valid_python(text)


def test_default_factories(memory_fs) -> None:
    factories = default_emitter_factories()
    assert list(factories) == ["models", "schemas", "controllers"]
    emitters = [factory(memory_fs, CompilationOptions()) for factory in factories.values()]
    assert [e.priority() for e in emitters] == [30, 20, 10]
    assert emitters[2].categories() == ("controllers", "routers")


class TestPackageNames:
    @pytest.mark.parametrize("package", ["app..models", "app.class", "app.2fa"])
    def test_invalid_package(self, package: str) -> None:
        with pytest.raises(GenerationError) as exc_info:
            check_package(package)
        assert exc_info.value.code == 2007

    def test_valid_package(self) -> None:
        assert check_package("app.models") == "app.models"

    def test_model_emitter_checks_before_writing(self, analyze, blog_draft, memory_fs) -> None:
        emitter = ModelEmitter(memory_fs, CompilationOptions(models_package="app.class"))
        with pytest.raises(GenerationError):
            emitter.output(analyze(blog_draft))
        assert len(memory_fs) == 0
