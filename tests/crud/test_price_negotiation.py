import pytest
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import (
    InvalidTransitionError,
    NegotiationConflictError,
    PermissionDeniedError,
    DomainValidationError,
)
from app.crud import crud_deal, crud_price_negotiation
from app.models.deal import Deal
from app.models.price_negotiation import PriceNegotiation
from app.models.response import Response
from app.schemas.negotiation import NegotiationCreate
from tests.utils.marketplace import (
    CARRIER_ID,
    CLIENT_ID,
    OTHER_CARRIER_ID,
    create_order,
    create_response,
)


def _propose(db, order, user_id, price, response_id=None):
    return crud_price_negotiation.propose(
        db,
        order_id=order.id,
        proposer_id=user_id,
        obj_in=NegotiationCreate(response_id=response_id, proposed_price=price),
    )


def test_accept_updates_response_and_every_deal(db_session):
    """O1 at 150 000; carrier proposes 130 000; client accepts."""
    order = create_order(db_session, client_price=150_000)
    response = create_response(db_session, order, price=160_000)
    deal = crud_deal.create_from_response(db_session, response=response, client_id=CLIENT_ID)

    n1 = _propose(db_session, order, CARRIER_ID, 130_000, response_id=response.id)
    accepted = crud_price_negotiation.accept(
        db_session, negotiation_id=n1.id, user_id=CLIENT_ID
    )

    assert accepted.status == "accepted"
    assert db_session.get(Response, response.id).price == 130_000
    assert db_session.get(Deal, deal.id).agreed_price == 130_000


def test_no_proposal_after_acceptance(db_session):
    order = create_order(db_session)
    response = create_response(db_session, order)
    n1 = _propose(db_session, order, CARRIER_ID, 130_000, response_id=response.id)
    crud_price_negotiation.accept(db_session, negotiation_id=n1.id, user_id=CLIENT_ID)

    with pytest.raises(NegotiationConflictError):
        _propose(db_session, order, CARRIER_ID, 140_000, response_id=response.id)


def test_second_accept_on_same_order_is_refused(db_session):
    order = create_order(db_session)
    first = create_response(db_session, order, carrier_id=CARRIER_ID)
    second = create_response(db_session, order, carrier_id=OTHER_CARRIER_ID)

    n1 = _propose(db_session, order, CARRIER_ID, 130_000, response_id=first.id)
    n2 = _propose(db_session, order, OTHER_CARRIER_ID, 140_000, response_id=second.id)
    crud_price_negotiation.accept(db_session, negotiation_id=n2.id, user_id=CLIENT_ID)

    with pytest.raises(NegotiationConflictError):
        crud_price_negotiation.accept(db_session, negotiation_id=n1.id, user_id=CLIENT_ID)

    db_session.refresh(n1)
    assert n1.status == "pending"
    assert db_session.get(Response, first.id).price == 160_000


def test_database_allows_one_accepted_price_per_order(db_session):
    order = create_order(db_session)
    response = create_response(db_session, order)
    n1 = _propose(db_session, order, CARRIER_ID, 130_000, response_id=response.id)
    crud_price_negotiation.accept(db_session, negotiation_id=n1.id, user_id=CLIENT_ID)

    db_session.add(
        PriceNegotiation(
            order_id=order.id, proposed_by=CLIENT_ID, proposed_price=120_000, status="rejected"
        )
    )
    db_session.commit()

    db_session.add(
        PriceNegotiation(
            order_id=order.id, proposed_by=CLIENT_ID, proposed_price=125_000, status="accepted"
        )
    )
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()

    accepted = db_session.query(PriceNegotiation).filter_by(status="accepted").all()
    assert [n.id for n in accepted] == [n1.id]


def test_reject_leaves_prices_untouched(db_session):
    order = create_order(db_session)
    response = create_response(db_session, order, price=160_000)
    deal = crud_deal.create_from_response(db_session, response=response, client_id=CLIENT_ID)

    n1 = _propose(db_session, order, CARRIER_ID, 130_000, response_id=response.id)
    rejected = crud_price_negotiation.reject(
        db_session, negotiation_id=n1.id, user_id=CLIENT_ID
    )

    assert rejected.status == "rejected"
    assert db_session.get(Response, response.id).price == 160_000
    assert db_session.get(Deal, deal.id).agreed_price == 160_000


@pytest.mark.parametrize("answer", [crud_price_negotiation.accept, crud_price_negotiation.reject])
def test_terminal_status_never_changes(db_session, answer):
    order = create_order(db_session)
    response = create_response(db_session, order)
    n1 = _propose(db_session, order, CARRIER_ID, 130_000, response_id=response.id)
    crud_price_negotiation.reject(db_session, negotiation_id=n1.id, user_id=CLIENT_ID)

    with pytest.raises(InvalidTransitionError):
        answer(db_session, negotiation_id=n1.id, user_id=CLIENT_ID)

    db_session.refresh(n1)
    assert n1.status == "rejected"


def test_same_party_cannot_propose_twice_in_a_row(db_session):
    order = create_order(db_session)
    response = create_response(db_session, order)
    _propose(db_session, order, CLIENT_ID, 120_000, response_id=response.id)

    with pytest.raises(NegotiationConflictError):
        _propose(db_session, order, CLIENT_ID, 125_000, response_id=response.id)

    # The counterparty may answer with a counter-offer
    counter = _propose(db_session, order, CARRIER_ID, 135_000, response_id=response.id)
    assert counter.status == "pending"


def test_proposer_cannot_accept_own_proposal(db_session):
    order = create_order(db_session)
    response = create_response(db_session, order)
    n1 = _propose(db_session, order, CARRIER_ID, 130_000, response_id=response.id)

    with pytest.raises(PermissionDeniedError):
        crud_price_negotiation.accept(db_session, negotiation_id=n1.id, user_id=CARRIER_ID)


def test_client_proposal_answered_only_by_linked_carrier(db_session):
    order = create_order(db_session)
    first = create_response(db_session, order, carrier_id=CARRIER_ID)
    create_response(db_session, order, carrier_id=OTHER_CARRIER_ID)
    n1 = _propose(db_session, order, CLIENT_ID, 120_000, response_id=first.id)

    with pytest.raises(PermissionDeniedError):
        crud_price_negotiation.accept(
            db_session, negotiation_id=n1.id, user_id=OTHER_CARRIER_ID
        )
    accepted = crud_price_negotiation.accept(
        db_session, negotiation_id=n1.id, user_id=CARRIER_ID
    )
    assert accepted.status == "accepted"


def test_outsider_cannot_propose(db_session):
    order = create_order(db_session)
    with pytest.raises(PermissionDeniedError):
        _propose(db_session, order, "user_stranger", 100_000)


def test_carrier_cannot_link_someone_elses_response(db_session):
    order = create_order(db_session)
    first = create_response(db_session, order, carrier_id=CARRIER_ID)
    create_response(db_session, order, carrier_id=OTHER_CARRIER_ID)

    with pytest.raises(PermissionDeniedError):
        _propose(db_session, order, OTHER_CARRIER_ID, 100_000, response_id=first.id)


def test_response_from_other_order_is_rejected(db_session):
    order = create_order(db_session)
    other_order = create_order(db_session)
    foreign = create_response(db_session, other_order)
    create_response(db_session, order)

    with pytest.raises(DomainValidationError):
        _propose(db_session, order, CARRIER_ID, 100_000, response_id=foreign.id)


def test_listing_is_newest_first(db_session):
    order = create_order(db_session)
    response = create_response(db_session, order)
    n1 = _propose(db_session, order, CARRIER_ID, 130_000, response_id=response.id)
    n2 = _propose(db_session, order, CLIENT_ID, 125_000, response_id=response.id)

    rows = crud_price_negotiation.get_multi_by_order(db_session, order.id)
    assert [r.id for r in rows] == [n2.id, n1.id]
