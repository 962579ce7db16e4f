"""Donation lifecycle service tests"""
import pytest
import stripe
from datetime import datetime, timedelta, timezone

from orphancare.core.errors import ForbiddenError, NotFoundError, ProviderError, ValidationError
from orphancare.models.donation import Donation, STATUS_ACTIVE, STATUS_CANCELLED, TYPE_RECURRING
from orphancare.services.donation_service import (
    cancel_donation, create_subscription, get_donation_history, list_all_donations
)
from conftest import make_subscription


def make_donation(db_session, donor, beneficiary, subscription_id="sub_existing", status=STATUS_ACTIVE, **kwargs):
    donation = Donation(
        donor_id=donor.id,
        beneficiary_id=beneficiary.id,
        amount=kwargs.pop("amount", 100),
        currency="etb",
        donation_type=kwargs.pop("donation_type", TYPE_RECURRING),
        status=status,
        stripe_subscription_id=subscription_id,
        **kwargs
    )
    db_session.add(donation)
    db_session.commit()
    db_session.refresh(donation)
    return donation


@pytest.mark.critical
class TestCreateSubscription:
    """Test starting a recurring donation"""

    def test_creates_one_active_recurring_donation(self, donor, beneficiary, db_session, auto_mock_stripe):
        result = create_subscription(donor.id, beneficiary.id, 500, db_session)

        assert result["subscriptionId"] == "sub_test123"
        assert result["clientSecret"] == "pi_test123_secret_abc"

        donations = db_session.query(Donation).all()
        assert len(donations) == 1
        donation = donations[0]
        assert donation.id == result["donationId"]
        assert donation.stripe_subscription_id == result["subscriptionId"]
        assert donation.status == STATUS_ACTIVE
        assert donation.donation_type == TYPE_RECURRING
        assert donation.amount == 500
        assert donation.currency == "etb"

    def test_customer_is_created_once_and_reused(self, donor, beneficiary, db_session, auto_mock_stripe):
        auto_mock_stripe.Subscription.create.side_effect = [
            make_subscription("sub_first"), make_subscription("sub_second")
        ]

        create_subscription(donor.id, beneficiary.id, 100, db_session)
        db_session.refresh(donor)
        assert donor.stripe_customer_id == "cus_test123"

        create_subscription(donor.id, beneficiary.id, 200, db_session)

        assert auto_mock_stripe.Customer.create.call_count == 1
        for call in auto_mock_stripe.Subscription.create.call_args_list:
            assert call.kwargs["customer"] == "cus_test123"
        assert db_session.query(Donation).count() == 2

    def test_existing_customer_skips_creation(self, donor, beneficiary, db_session, auto_mock_stripe):
        donor.stripe_customer_id = "cus_existing"
        db_session.commit()

        create_subscription(donor.id, beneficiary.id, 100, db_session)

        auto_mock_stripe.Customer.create.assert_not_called()
        assert auto_mock_stripe.Subscription.create.call_args.kwargs["customer"] == "cus_existing"

    def test_product_name_and_metadata(self, donor, beneficiary, db_session, auto_mock_stripe):
        create_subscription(donor.id, beneficiary.id, 100, db_session)

        kwargs = auto_mock_stripe.Subscription.create.call_args.kwargs
        assert kwargs["items"][0]["price_data"]["product_data"]["name"] == "Monthly support for Abebe"
        assert kwargs["metadata"] == {"user_id": str(donor.id), "beneficiary_id": str(beneficiary.id)}

    def test_idempotent_replay_returns_same_donation(self, donor, beneficiary, db_session, auto_mock_stripe):
        first = create_subscription(donor.id, beneficiary.id, 100, db_session, idempotency_key="req-1")
        second = create_subscription(donor.id, beneficiary.id, 100, db_session, idempotency_key="req-1")

        assert first == second
        assert db_session.query(Donation).count() == 1

    @pytest.mark.parametrize("beneficiary_id,amount", [(None, 100), (0, 100)])
    def test_missing_beneficiary_rejected(self, donor, db_session, auto_mock_stripe, beneficiary_id, amount):
        with pytest.raises(ValidationError) as exc_info:
            create_subscription(donor.id, beneficiary_id, amount, db_session)
        assert exc_info.value.message == "Beneficiary ID and amount are required"
        auto_mock_stripe.Customer.create.assert_not_called()

    @pytest.mark.parametrize("amount", [None, 0, -5, True])
    def test_invalid_amount_rejected(self, donor, beneficiary, db_session, auto_mock_stripe, amount):
        with pytest.raises(ValidationError):
            create_subscription(donor.id, beneficiary.id, amount, db_session)
        auto_mock_stripe.Subscription.create.assert_not_called()
        assert db_session.query(Donation).count() == 0

    def test_unknown_beneficiary(self, donor, db_session, auto_mock_stripe):
        with pytest.raises(NotFoundError) as exc_info:
            create_subscription(donor.id, 999, 100, db_session)
        assert exc_info.value.message == "Beneficiary not found"
        auto_mock_stripe.Customer.create.assert_not_called()

    def test_unknown_user(self, beneficiary, db_session):
        with pytest.raises(NotFoundError):
            create_subscription(999, beneficiary.id, 100, db_session)

    def test_provider_failure_writes_no_donation(self, donor, beneficiary, db_session, auto_mock_stripe):
        auto_mock_stripe.Subscription.create.side_effect = stripe.StripeError("declined")

        with pytest.raises(ProviderError):
            create_subscription(donor.id, beneficiary.id, 100, db_session)

        assert db_session.query(Donation).count() == 0


@pytest.mark.critical
class TestCancelDonation:
    """Test donor-initiated cancellation"""

    def test_cancel_own_donation(self, donor, beneficiary, db_session, auto_mock_stripe):
        donation = make_donation(db_session, donor, beneficiary, subscription_id="sub_mine")

        cancel_donation(donor.id, donation.id, db_session)

        auto_mock_stripe.Subscription.cancel.assert_called_once_with("sub_mine")
        db_session.refresh(donation)
        assert donation.status == STATUS_CANCELLED

    def test_cancel_other_donors_donation_forbidden(self, donor, other_donor, beneficiary, db_session, auto_mock_stripe):
        donation = make_donation(db_session, other_donor, beneficiary)

        with pytest.raises(ForbiddenError):
            cancel_donation(donor.id, donation.id, db_session)

        auto_mock_stripe.Subscription.cancel.assert_not_called()
        db_session.refresh(donation)
        assert donation.status == STATUS_ACTIVE

    def test_cancel_missing_donation(self, donor, db_session):
        with pytest.raises(NotFoundError):
            cancel_donation(donor.id, 12345, db_session)

    def test_cancel_requires_donation_id(self, donor, db_session):
        with pytest.raises(ValidationError) as exc_info:
            cancel_donation(donor.id, None, db_session)
        assert exc_info.value.message == "Donation ID is required"

    def test_provider_failure_leaves_donation_active(self, donor, beneficiary, db_session, auto_mock_stripe):
        donation = make_donation(db_session, donor, beneficiary)
        auto_mock_stripe.Subscription.cancel.side_effect = stripe.StripeError("timeout")

        with pytest.raises(ProviderError):
            cancel_donation(donor.id, donation.id, db_session)

        db_session.refresh(donation)
        assert donation.status == STATUS_ACTIVE

    def test_cancel_already_cancelled_is_noop(self, donor, beneficiary, db_session, auto_mock_stripe):
        donation = make_donation(db_session, donor, beneficiary, status=STATUS_CANCELLED)

        cancel_donation(donor.id, donation.id, db_session)

        auto_mock_stripe.Subscription.cancel.assert_not_called()
        db_session.refresh(donation)
        assert donation.status == STATUS_CANCELLED

    def test_cancel_without_subscription_skips_provider(self, donor, beneficiary, db_session, auto_mock_stripe):
        donation = make_donation(db_session, donor, beneficiary, subscription_id=None, donation_type="one-time")

        cancel_donation(donor.id, donation.id, db_session)

        auto_mock_stripe.Subscription.cancel.assert_not_called()
        db_session.refresh(donation)
        assert donation.status == STATUS_CANCELLED


@pytest.mark.high
class TestDonationHistory:
    """Test history listings"""

    def test_history_is_newest_first_and_scoped_to_donor(self, donor, other_donor, beneficiary, db_session):
        now = datetime.now(timezone.utc)
        older = make_donation(db_session, donor, beneficiary, subscription_id="sub_old", created_at=now - timedelta(days=2))
        newer = make_donation(db_session, donor, beneficiary, subscription_id="sub_new", created_at=now)
        make_donation(db_session, other_donor, beneficiary, subscription_id="sub_other")

        history = get_donation_history(donor.id, db_session)

        assert [d["id"] for d in history] == [newer.id, older.id]
        assert history[0]["stripeSubscriptionId"] == "sub_new"
        assert history[0]["type"] == TYPE_RECURRING

    def test_history_empty(self, donor, db_session):
        assert get_donation_history(donor.id, db_session) == []

    def test_admin_listing_includes_all_donors(self, donor, other_donor, beneficiary, db_session):
        make_donation(db_session, donor, beneficiary, subscription_id="sub_a")
        make_donation(db_session, other_donor, beneficiary, subscription_id="sub_b")

        assert {d["donorId"] for d in list_all_donations(db_session)} == {donor.id, other_donor.id}
