"""Unit tests for role and ownership checks."""

import pytest
from libs.auth.guard import (
    can_see,
    ensure_assigned_seller,
    ensure_owner,
    ensure_role,
    ensure_visible,
    is_buyer,
)
from libs.auth.models import Role
from libs.common.errors import AuthorizationDenied, NotFound
from tests.conftest import make_admin, make_buyer, make_seller, make_user


@pytest.mark.unit
def test_customer_and_buyer_are_one_role_class():
    customer = make_user(Role.CUSTOMER)

    assert is_buyer(customer)
    ensure_role(customer, Role.BUYER)
    ensure_role(make_buyer(), Role.CUSTOMER)


@pytest.mark.unit
def test_ensure_role_rejects_other_roles():
    with pytest.raises(AuthorizationDenied) as exc:
        ensure_role(make_buyer(), Role.SELLER, Role.ADMIN)
    assert exc.value.status_code == 403


@pytest.mark.unit
def test_admin_sees_everything():
    assert can_see(make_admin(), owner_ids=["someone"], seller_ids=["other"])


@pytest.mark.unit
def test_seller_sees_only_resources_they_sell():
    seller = make_seller()

    assert can_see(seller, owner_ids=[], seller_ids=[seller.user_id])
    # Owning ids do not count for sellers
    assert not can_see(seller, owner_ids=[seller.user_id], seller_ids=["other"])


@pytest.mark.unit
def test_cross_tenant_read_is_not_found():
    buyer = make_buyer()

    with pytest.raises(NotFound) as exc:
        ensure_visible(buyer, label="Order", owner_ids=["another-buyer"])
    assert exc.value.status_code == 404
    assert exc.value.detail == "Order not found"


@pytest.mark.unit
def test_ensure_owner():
    buyer = make_buyer()

    ensure_owner(buyer, buyer.user_id, action="edit")
    ensure_owner(make_admin(), buyer.user_id, action="edit")
    with pytest.raises(AuthorizationDenied):
        ensure_owner(make_buyer(), buyer.user_id, action="edit")
    with pytest.raises(AuthorizationDenied):
        ensure_owner(buyer, None, action="edit")


@pytest.mark.unit
def test_ensure_assigned_seller():
    seller = make_seller()

    ensure_assigned_seller(seller, [seller.user_id], action="ship")
    ensure_assigned_seller(make_admin(), [], action="ship")
    with pytest.raises(AuthorizationDenied):
        ensure_assigned_seller(make_seller(), [seller.user_id], action="ship")
    # Buyers are never assigned sellers, even with a matching id
    buyer = make_buyer(user_id=seller.user_id)
    with pytest.raises(AuthorizationDenied):
        ensure_assigned_seller(buyer, [seller.user_id], action="ship")
