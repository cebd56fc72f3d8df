"""Op classes shared across the test suite."""

from __future__ import annotations

from typing import Any, ClassVar

from spine_ops import fields
from spine_ops.core.errors import RecordFailure
from spine_ops.core.timestamps import utc_now
from spine_ops.framework.auth import AuthorizedOp, no_user_requirements, policy, require_no_user, require_user
from spine_ops.framework.operations import Op
from spine_ops.framework.outputs import Output
from spine_ops.framework.validation import inclusion, presence
from tests._support.models import AdminUser, ErrorSource, User

# =============================================================================
# Signup
# =============================================================================


class SignupOp(Op):
    email = fields.string(aka="email_address")
    password = fields.string()

    perform_called = Output()
    perform_finished = Output()
    created_user = Output()

    rules = (presence("email"), presence("password"))

    user_class: ClassVar[type[User]] = User

    def perform(self) -> Any:
        self.output("perform_called", True)
        user = self.build_user()

        if not user.valid():
            self.inherit_errors(user)
            return False

        self.output("perform_finished", True)
        self.output("created_user", user)
        return True

    def build_user(self) -> User:
        return self.user_class(email_address=self.email, password=self.password)


class AdminSignupOp(SignupOp):
    privileges = fields.field(default="min")

    user_class = AdminUser


class BusinessSignupOp(Op):
    business_name = fields.string()


BusinessSignupOp.fields_from(SignupOp)


# =============================================================================
# Defaults and fields_from
# =============================================================================


class DefaultsOp(Op):
    foo = fields.field(default="foo")
    bar = fields.field(default="bar")
    baz = fields.field(default=False)


class ExceptFooBarOp(Op):
    pass


ExceptFooBarOp.fields_from(DefaultsOp, except_=("foo", "bar"))


class OnlyFooBarOp(Op):
    pass


OnlyFooBarOp.fields_from(DefaultsOp, only=("foo", "bar"))


class InheritedDefaultsOp(DefaultsOp):
    bar = fields.field(default="barstool", allow_overwrite=True)


class GroupedDefaultsOp(Op):
    pass


GroupedDefaultsOp.fields_from(DefaultsOp, group="inherited")


class GroupedOp(Op):
    first_name = fields.string(group="info")
    last_name = fields.string(group="info")
    nickname = fields.string(group="info", default="buddy")
    ssn = fields.string(groups=("sensitive", "info"))
    notes = fields.string()


class PrivateFieldsOp(Op):
    token = fields.string(mass_assignable=False)
    secret = fields.string(field_reader=False)
    frozen = fields.string(field_writer=False, default="ice")


# =============================================================================
# Type casting
# =============================================================================


class TypeCastOp(Op):
    integer_input = fields.integer()
    number_input = fields.number()
    decimal_input = fields.decimal()
    string_input = fields.string()
    boolean_input = fields.boolean()
    date_input = fields.date()
    time_input = fields.time(default=utc_now)
    precise_time_input = fields.time(precision="high")
    iso_date_input = fields.iso_date()
    iso_time_input = fields.iso_time()
    object_input = fields.object()
    array_input = fields.array(default="foo")
    type_array_input = fields.array(of="integer")
    file_input = fields.file()
    fk_input_owner_id = fields.foreign_key()
    fk_input_email_address = fields.foreign_key(foreign_key_type="string")


# =============================================================================
# Outputs
# =============================================================================


class FalsePerformOp(Op):
    def perform(self) -> Any:
        return False


class MissingOutputOp(Op):
    def perform(self) -> Any:
        self.output("foo", "bar")


class MissingOutputSetOp(Op):
    foo = Output()

    def perform(self) -> Any:
        return True


class OutputNotRequiredOp(Op):
    foo = Output(required=False)

    def perform(self) -> Any:
        return True


class NoOutputNoSuccessOp(Op):
    foo = Output()

    def perform(self) -> Any:
        self.errors.add("foo", "bar")


class OutputWithTypeValidationNotRequiredOp(Op):
    value = Output(type=str, required=False)

    def perform(self) -> Any:
        return None


class OutputWithTypeValidationRequiredOp(Op):
    value = Output(type=str, required=True)

    def perform(self) -> Any:
        return None


class LazyOutputOp(Op):
    foo = Output(lazy=True)
    baz = Output(lazy=True, type=str)

    def perform(self) -> Any:
        self.output("foo", lambda: self.call_me())
        self.output("baz", lambda: self.call_baz())

    def call_me(self) -> Any:
        return None

    def call_baz(self) -> Any:
        return None


# =============================================================================
# Failures and error inheritance
# =============================================================================


class ErrorTraceSubOp(Op):
    def perform(self) -> Any:
        ErrorSource().bar()


class ErrorTraceOp(Op):
    def perform(self) -> Any:
        ErrorTraceSubOp.submit_or_raise()


class CustomFailure(RecordFailure):
    """Failure raised by ``CustomFailureClassOp``."""


class CustomFailureClassOp(Op):
    failure_class = CustomFailure

    def perform(self) -> Any:
        self.errors.add("base", "Will never work")


class PrefixedInputsOp(Op):
    user_email_address = fields.string()

    def perform(self) -> Any:
        user = AdminUser(email_address=self.user_email_address)
        user.valid()
        self.inherit_errors(user, prefix="user_")


class RemappedErrorsOp(Op):
    contact = fields.string()

    error_map = {"email_address": "contact"}
    ignored_errors = frozenset({"password"})

    def perform(self) -> Any:
        user = User(email_address=None)
        user.errors.add("email_address", "is taken")
        user.errors.add("password", "is too short")
        user.errors.add("nickname", "is rude")
        self.inherit_errors(user)


# =============================================================================
# Associations
# =============================================================================


class SimpleAssociationOp(Op):
    user = fields.association()


class SimpleAssociationWithStringIdOp(Op):
    string_id_user = fields.association()


class UnscopedSimpleAssociationOp(Op):
    user = fields.association(unscoped=True, allow_overwrite=True)


class PolymorphicAssociationOp(Op):
    admin = fields.association(polymorphic=True)


class AssociationWithClassOp(Op):
    admin = fields.association(class_name="AdminUser")


class AssociationWithForeignKeyOp(Op):
    user = fields.association(foreign_key="user_identifier")


class AssociationWithFindByKeyOp(Op):
    user = fields.association(find_by="email_address", foreign_key_type="string")


class AssociationWithImplicitStringFindByOp(Op):
    user = fields.association(find_by="email_address")


class AssociationWithFindByAndForeignKeyOp(Op):
    user = fields.association(foreign_key="email_address", find_by="email_address")


class AliasedAssociationOp(Op):
    user = fields.association(as_="owner")


class ExceptAssociationOp(Op):
    pass


ExceptAssociationOp.fields_from(PolymorphicAssociationOp, except_=("admin",))


class OnlyAssociationOp(Op):
    pass


OnlyAssociationOp.fields_from(PolymorphicAssociationOp, only=("admin",))


class InheritedSimpleAssociationOp(Op):
    pass


InheritedSimpleAssociationOp.fields_from(SimpleAssociationOp)


class InheritedUnscopedAssociationOp(Op):
    pass


InheritedUnscopedAssociationOp.fields_from(UnscopedSimpleAssociationOp)


class InheritedPolymorphicAssociationOp(Op):
    pass


InheritedPolymorphicAssociationOp.fields_from(PolymorphicAssociationOp)


class GroupedParamAssociationOp(Op):
    user = fields.association(group="info")


class GroupedPolymorphicParamAssociationOp(Op):
    user = fields.association(polymorphic=True, group="info")


# =============================================================================
# Authorization
# =============================================================================


class AuthOp(AuthorizedOp):
    def perform(self) -> Any:
        return True


class MissingAuthOp(AuthOp):
    pass


class RequireUserOp(AuthOp):
    some_input = fields.string()

    authorization = (require_user(),)


class RequireNoUserOp(AuthOp):
    authorization = (require_no_user(),)


class NoUserRequirementsOp(AuthOp):
    authorization = (no_user_requirements(),)


class DifferentUserClassOp(AuthOp):
    user_class_name = "AdminUser"

    authorization = (require_user(),)


class CustomAuthorizeOp(AuthOp):
    authorization = (require_user(), "authorize_user_is_correct")

    def authorize_user_is_correct(self) -> None:
        if not str(self.current_user.email_address or "").endswith("example.com"):
            self.unauthorized()


class FakePolicy:
    def __init__(self, **answers: bool):
        self.answers = answers

    def user_can_access(self) -> bool:
        return self.answers.get("user_can_access", True)

    def user_can_do_it(self) -> bool:
        return self.answers.get("user_can_do_it", False)


class PolicyOp(AuthOp):
    authorization = (
        require_user(),
        policy("user_can_access"),
        policy("user_can_do_it"),
    )

    def policy(self) -> FakePolicy:
        return FakePolicy()


class IfConditionalPolicyOp(AuthOp):
    check_policy = fields.boolean()

    rules = (inclusion("check_policy", (True, False)),)
    authorization = (
        require_user(),
        policy("user_can_access", if_="check_policy"),
    )

    def policy(self) -> FakePolicy:
        return FakePolicy(user_can_access=False)


class UnlessConditionalPolicyOp(AuthOp):
    unless_check_policy = fields.boolean()

    rules = (inclusion("unless_check_policy", (True, False)),)
    authorization = (
        require_user(),
        policy("user_can_access", unless="unless_check_policy"),
    )

    def policy(self) -> FakePolicy:
        return FakePolicy(user_can_access=False)
