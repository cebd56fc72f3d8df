"""
Authorization for ops that act on behalf of a user.

An ``AuthorizedOp`` takes the acting user as its first argument and runs its
declared authorization checks before any other validation. A failing check
raises ``NotAuthorizedError``; it is never folded into ``errors``.

Checks are declared as data on the class, and subclasses inherit their
parents' checks:

    ::

        class UpdateAccountOp(AuthorizedOp):
            authorization = (
                require_user(),
                policy("can_update", if_="account_provided"),
            )

Strings in ``authorization`` name methods on the op, so custom checks read as
``authorization = ("authorize_account_owner",)``.

Tags:
    spine-ops, framework, authorization, policy

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, ClassVar

from spine_ops.core.errors import AuthorizationNotDeclaredError, NotAuthorizedError, UsageError
from spine_ops.framework.logging import get_logger
from spine_ops.framework.operations.base import Op

log = get_logger(__name__)

Condition = str | Callable[[Any], Any]


@dataclass(frozen=True)
class AuthorizationCheck:
    """A named check; calling it with the op raises when unauthorized."""

    name: str
    fn: Callable[[Any], Any]

    def __call__(self, op: Any) -> Any:
        return self.fn(op)


def require_user() -> AuthorizationCheck:
    """The op must be submitted with a user."""

    def check(op: AuthorizedOp) -> None:
        if not op.current_user_provided:
            op.unauthorized()

    return AuthorizationCheck("authorize_user_required", check)


def require_no_user() -> AuthorizationCheck:
    """The op must be submitted without a user."""

    def check(op: AuthorizedOp) -> None:
        if op.current_user_provided:
            op.unauthorized("empty_unauthorized")

    return AuthorizationCheck("authorize_no_user_required", check)


def no_user_requirements() -> AuthorizationCheck:
    """Any user, or none, may submit the op."""
    return AuthorizationCheck("authorize_user_not_required", lambda op: True)


def _as_tuple(conditions: Condition | Iterable[Condition] | None) -> tuple[Condition, ...]:
    if conditions is None:
        return ()
    if isinstance(conditions, str) or callable(conditions):
        return (conditions,)
    return tuple(conditions)


def _evaluate(op: Any, condition: Condition) -> bool:
    if isinstance(condition, str):
        value = getattr(op, condition)
        return bool(value() if callable(value) else value)
    return bool(condition(op))


def policy(
    *names: str,
    policy_name: str = "policy",
    if_: Condition | Iterable[Condition] | None = None,
    unless: Condition | Iterable[Condition] | None = None,
    error: str | None = None,
) -> AuthorizationCheck:
    """Every named predicate of ``op.<policy_name>`` must return truthy.

    The check is skipped when any ``if_`` condition is falsy or any
    ``unless`` condition is truthy. A missing policy is unauthorized.
    """
    if not names:
        raise UsageError("policy() requires at least one predicate name")
    if_conditions = _as_tuple(if_)
    unless_conditions = _as_tuple(unless)

    def check(op: AuthorizedOp) -> None:
        if not all(_evaluate(op, c) for c in if_conditions):
            return
        if any(_evaluate(op, c) for c in unless_conditions):
            return

        target = getattr(op, policy_name)
        if callable(target):
            target = target()
        if target is None:
            op.unauthorized(error)

        for name in names:
            if not getattr(target, name)():
                log.debug("policy_rejected", op=type(op).__name__, policy=policy_name, predicate=name)
                op.unauthorized(error)

    return AuthorizationCheck(f"authorize_{policy_name}_{'_'.join(names)}", check)


class AuthorizedOp(Op):
    """
    Op submitted on behalf of ``current_user``.

    ``current_user`` may be an instance of the class registered as
    ``user_class_name``, an integer id (resolved lazily through the entity
    lookup), or None.
    """

    authorization: ClassVar[tuple[AuthorizationCheck | str, ...]] = ()
    authorization_checks: ClassVar[tuple[AuthorizationCheck | str, ...]] = ()
    user_class_name: ClassVar[str] = "User"

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        # the nearest base already carries its class-body and authorize() checks
        inherited = super(cls, cls).authorization_checks
        cls.authorization_checks = tuple(inherited) + tuple(cls.__dict__.get("authorization", ()))

    @classmethod
    def authorize(cls, *checks: AuthorizationCheck | str) -> None:
        """Append checks after the class body has run."""
        cls.authorization_checks = cls.authorization_checks + checks

    @classmethod
    def authorization_declared(cls) -> bool:
        return bool(cls.authorization_checks)

    def __init__(
        self,
        current_user: Any = None,
        inputs: Mapping[str, Any] | Any = None,
        *,
        initializer: Callable[[Op], Any] | None = None,
    ):
        if not self.authorization_declared():
            raise AuthorizationNotDeclaredError(type(self).__name__)

        # Op(inputs) reads naturally when no user is involved
        if inputs is None and (isinstance(current_user, Mapping) or hasattr(current_user, "to_unsafe_dict")):
            current_user, inputs = None, current_user

        self._check_user_type(current_user)
        self._current_user = current_user
        self._skip_auth_checks = False
        super().__init__(inputs, initializer=initializer)

    def _check_user_type(self, user: Any) -> None:
        if user is None or (isinstance(user, int) and not isinstance(user, bool)):
            return
        if self._is_user_instance(user):
            return
        raise UsageError(
            f"current_user must be one of the following types "
            f"{{{self.user_class_name},int,NoneType}} but was {type(user).__name__}"
        )

    def _is_user_instance(self, user: Any) -> bool:
        try:
            user_class = self.entity_registry.resolve(self.user_class_name)
        except LookupError:
            return any(klass.__name__ == self.user_class_name for klass in type(user).__mro__)
        return isinstance(user, user_class)

    @property
    def current_user(self) -> Any:
        """The acting user; an integer id is looked up on first read."""
        user = self._current_user
        if isinstance(user, int) and not isinstance(user, bool):
            user_class = self.entity_registry.resolve(self.user_class_name)
            user = type(self).entity_lookup(user_class, "id", user)
            self._current_user = user
        return user

    @property
    def current_user_provided(self) -> bool:
        return self._current_user is not None

    def skip_auth_checks(self) -> AuthorizedOp:
        """Bypass authorization for this instance; returns the op."""
        self._skip_auth_checks = True
        return self

    def unauthorized(self, reason: str | None = None) -> None:
        raise NotAuthorizedError(reason).with_context(op=type(self).__name__)

    def validate_authorization_checks(self) -> None:
        for check in self.authorization_checks:
            if isinstance(check, str):
                getattr(self, check)()
            else:
                check(self)

    def run_validations(self) -> None:
        if not self._skip_auth_checks:
            self.validate_authorization_checks()
        super().run_validations()
