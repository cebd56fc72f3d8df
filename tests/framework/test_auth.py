"""
Tests for authorized ops (spine_ops.framework.auth).

Tests cover:
- Declaring authorization and the inherited check list
- require_user / require_no_user / no_user_requirements
- current_user typing and lazy id resolution
- Policies with if_/unless conditions
- Bypassing checks
"""

import pytest

from spine_ops.core.errors import AuthorizationNotDeclaredError, NotAuthorizedError, UsageError
from spine_ops.framework.auth import AuthorizationCheck, no_user_requirements, policy, require_user
from tests._support.models import AdminUser, User
from tests._support.ops import (
    AuthOp,
    CustomAuthorizeOp,
    DifferentUserClassOp,
    IfConditionalPolicyOp,
    MissingAuthOp,
    NoUserRequirementsOp,
    PolicyOp,
    RequireNoUserOp,
    RequireUserOp,
    UnlessConditionalPolicyOp,
)


@pytest.fixture
def user() -> User:
    return User(id=4, email_address="doug@example.com")


def check_names(op_class):
    return [getattr(check, "name", check) for check in op_class.authorization_checks]


# =============================================================================
# Declaration
# =============================================================================


class TestAuthorizationDeclaration:
    """Tests for declaring checks on the class."""

    def test_undeclared_authorization_raises_on_init(self):
        with pytest.raises(AuthorizationNotDeclaredError, match="has not been declared on MissingAuthOp"):
            MissingAuthOp()

    def test_checks_are_registered_on_the_class(self):
        assert MissingAuthOp.authorization_declared() is False
        assert CustomAuthorizeOp.authorization_declared() is True
        assert check_names(CustomAuthorizeOp) == ["authorize_user_required", "authorize_user_is_correct"]
        assert check_names(NoUserRequirementsOp) == ["authorize_user_not_required"]

    def test_policy_checks_are_named(self):
        assert "authorize_policy_user_can_access" in check_names(PolicyOp)

    def test_checks_are_inherited(self):
        class StrictOp(RequireUserOp):
            authorization = ("authorize_extra",)

            def authorize_extra(self):
                pass

        assert check_names(StrictOp) == ["authorize_user_required", "authorize_extra"]
        assert check_names(RequireUserOp) == ["authorize_user_required"]

    def test_authorize_appends_after_the_class_body(self):
        class LateOp(AuthOp):
            pass

        LateOp.authorize(no_user_requirements())
        assert LateOp().submit_or_raise()

    def test_authorize_checks_are_inherited(self):
        class LateOp(AuthOp):
            pass

        LateOp.authorize(require_user())

        class ChildOp(LateOp):
            pass

        assert check_names(ChildOp) == ["authorize_user_required"]
        with pytest.raises(NotAuthorizedError):
            ChildOp.submit_or_raise()

    def test_authorize_checks_stay_ahead_of_subclass_declarations(self, user):
        class LateOp(AuthOp):
            authorization = (no_user_requirements(),)

        LateOp.authorize(require_user())

        class ChildOp(LateOp):
            authorization = ("authorize_extra",)

            def authorize_extra(self):
                pass

        assert check_names(ChildOp) == [
            "authorize_user_not_required",
            "authorize_user_required",
            "authorize_extra",
        ]
        with pytest.raises(NotAuthorizedError):
            ChildOp.submit_or_raise()
        assert ChildOp.submit_or_raise(user)

    def test_policy_requires_a_predicate(self):
        with pytest.raises(UsageError):
            policy()

    def test_checks_are_callable(self):
        check = require_user()
        assert isinstance(check, AuthorizationCheck)
        with pytest.raises(NotAuthorizedError):
            check(RequireUserOp())


# =============================================================================
# User requirements
# =============================================================================


class TestUserRequirements:
    """Tests for the built-in user checks."""

    def test_require_user_without_a_user(self):
        with pytest.raises(NotAuthorizedError, match="not authorized to perform this action") as exc_info:
            RequireUserOp.submit_or_raise()
        assert exc_info.value.status == 401
        assert exc_info.value.context.op == "RequireUserOp"

    def test_require_user_with_a_user(self, user):
        assert RequireUserOp.submit_or_raise(user).current_user is user

    def test_require_no_user_with_a_user(self, user):
        with pytest.raises(NotAuthorizedError) as exc_info:
            RequireNoUserOp.submit_or_raise(user)
        assert exc_info.value.reason == "empty_unauthorized"

    def test_require_no_user_without_a_user(self):
        RequireNoUserOp.submit_or_raise()

    def test_no_user_requirements(self, user):
        NoUserRequirementsOp.submit_or_raise(user)
        NoUserRequirementsOp.submit_or_raise()

    def test_custom_authorizations(self, user):
        CustomAuthorizeOp.submit_or_raise(user)

        with pytest.raises(NotAuthorizedError):
            CustomAuthorizeOp.submit_or_raise(User(email_address="foo@bar.com"))

    def test_failures_are_not_folded_into_errors(self):
        op = RequireUserOp()
        with pytest.raises(NotAuthorizedError):
            op.submit()
        assert not op.errors

    def test_checks_can_be_bypassed(self):
        op = CustomAuthorizeOp(User(email_address="foo@bar.com"))
        assert op.skip_auth_checks() is op
        assert op.submit_or_raise()


# =============================================================================
# current_user
# =============================================================================


class TestCurrentUser:
    """Tests for current_user typing and resolution."""

    def test_an_id_can_be_passed(self, user, lookup):
        lookup.return_value = user
        op = RequireUserOp.submit_or_raise(user.id)
        assert op.current_user is user
        lookup.assert_called_once_with(User, "id", 4)

    def test_current_user_is_defined_by_an_id(self):
        user = CustomAuthorizeOp(1).current_user
        assert user.id == 1
        assert isinstance(user, User)
        assert not isinstance(user, AdminUser)

    def test_the_user_class_can_be_overridden(self):
        user = DifferentUserClassOp(1).current_user
        assert user.id == 1
        assert isinstance(user, AdminUser)

    def test_another_class_cannot_be_used_as_the_user(self, user):
        message = r"current_user must be one of the following types \{AdminUser,int,NoneType\} but was str"
        with pytest.raises(UsageError, match=message):
            DifferentUserClassOp("doug")
        with pytest.raises(UsageError, match="but was User"):
            DifferentUserClassOp(user)

    def test_booleans_are_not_ids(self):
        with pytest.raises(UsageError, match="but was bool"):
            RequireUserOp(True)

    def test_current_user_is_not_resolved_by_the_constructor(self, lookup):
        RequireUserOp(4)
        lookup.assert_not_called()

    def test_inputs_follow_the_user(self, user):
        op = RequireUserOp(user, {"some_input": "foobarbaz"})
        op.submit_or_raise()
        assert op.some_input == "foobarbaz"
        assert dict(op.params) == {"some_input": "foobarbaz"}
        assert op.current_user is user

    def test_inputs_may_stand_in_for_the_user(self):
        op = RequireUserOp({"some_input": "foobarbaz"})
        assert op.some_input == "foobarbaz"
        assert op.current_user is None
        assert op.current_user_provided is False


# =============================================================================
# Policies
# =============================================================================


class TestPolicies:
    """Tests for policy checks."""

    def test_policies_run_as_part_of_authorization(self, user):
        with pytest.raises(NotAuthorizedError):
            PolicyOp.submit_or_raise(user)

        op = PolicyOp()
        op.skip_auth_checks()
        assert op.submit_or_raise()

    def test_if_false_skips_the_policy(self, user):
        assert IfConditionalPolicyOp(user, {"check_policy": False}).submit_or_raise()

    def test_if_true_runs_the_policy(self, user):
        with pytest.raises(NotAuthorizedError):
            IfConditionalPolicyOp(user, {"check_policy": True}).submit_or_raise()

    def test_unless_true_skips_the_policy(self, user):
        assert UnlessConditionalPolicyOp(user, {"unless_check_policy": True}).submit_or_raise()

    def test_unless_false_runs_the_policy(self, user):
        with pytest.raises(NotAuthorizedError):
            UnlessConditionalPolicyOp(user, {"unless_check_policy": False}).submit_or_raise()

    def test_missing_policy_is_unauthorized(self, user):
        class NoPolicyOp(AuthOp):
            authorization = (policy("user_can_access", error="No policy for you"),)

            def policy(self):
                return None

        with pytest.raises(NotAuthorizedError, match="No policy for you"):
            NoPolicyOp(user).submit_or_raise()

    def test_callable_conditions_and_custom_policy_name(self, user):
        class Permissions:
            def can_export(self):
                return False

        class ExportOp(AuthOp):
            authorization = (
                policy("can_export", policy_name="permissions", if_=lambda op: op.current_user_provided),
            )
            permissions = Permissions()

        ExportOp().submit_or_raise()
        with pytest.raises(NotAuthorizedError):
            ExportOp(user).submit_or_raise()
