"""Shared fixtures: a library model and in-memory token/policy stores."""

import threading

import pytest

from aclkit import Model, Policy, Rule, Token
from aclkit.resolver import ResolveContext


class InMemoryTokenStore:
    """SecretResolver backed by a dict."""

    def __init__(self, tokens: dict[str, Token] | None = None):
        self.tokens = dict(tokens or {})
        self.calls = 0
        self._lock = threading.Lock()

    def resolve_secret(self, ctx: ResolveContext, secret: str) -> Token:
        with self._lock:
            self.calls += 1
        if secret not in self.tokens:
            raise KeyError(f"unknown secret {secret[:4]}...")
        return self.tokens[secret]


class InMemoryPolicyStore:
    """PolicyResolver backed by a dict."""

    def __init__(self, policies: dict[str, Policy] | None = None):
        self.policies = dict(policies or {})
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def add(self, policy: Policy) -> None:
        self.policies[policy.name] = policy

    def resolve_policy(self, ctx: ResolveContext, name: str) -> Policy:
        with self._lock:
            self.calls.append(name)
        if name not in self.policies:
            raise LookupError(f"no such policy: {name}")
        return self.policies[name]


def build_library_model() -> Model:
    model = Model()
    model.define_resource("book") \
        .capabilities("read", "write", "list") \
        .alias("read", "read", "list") \
        .alias("write", "write", "read", "list")
    model.define_resource("shelf") \
        .capabilities("view", "stock", "remove") \
        .alias("manage", "stock", "remove", "view")
    return model.validate()


@pytest.fixture
def library_model() -> Model:
    """Validated model with `book` and `shelf` resources."""
    return build_library_model()


@pytest.fixture
def librarian() -> Policy:
    return Policy(
        name="librarian",
        rules=[Rule(resource="book", instance="*", capabilities={"write"})],
    )


@pytest.fixture
def reader() -> Policy:
    return Policy(
        name="reader",
        rules=[Rule(resource="book", capabilities={"read"})],
    )


@pytest.fixture
def stocker() -> Policy:
    return Policy(
        name="stocker",
        rules=[
            Rule(resource="shelf", capabilities={"view"}),
            Rule(resource="shelf", instance="fiction", capabilities={"stock"}),
        ],
    )


@pytest.fixture
def token_store() -> InMemoryTokenStore:
    return InMemoryTokenStore({
        "s.librarian": Token(policies=("librarian",), accessor="acc-1"),
        "s.reader-stocker": Token(policies=("reader", "stocker")),
        "s.nobody": Token(policies=()),
        "s.broken": Token(policies=("reader", "missing")),
    })


@pytest.fixture
def policy_store(librarian, reader, stocker) -> InMemoryPolicyStore:
    return InMemoryPolicyStore({p.name: p for p in (librarian, reader, stocker)})
