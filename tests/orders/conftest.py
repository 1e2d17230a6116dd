import pytest
from orders.broadcast import get_broadcaster, reset_broadcaster
from orders.order.actors import Actor, Role
from orders.order.locking import reset_lock_coordinator

VALE = Actor(name="Vale", role=Role.COORDINATOR, id="u-vale")
LUCHO = Actor(name="Lucho", role=Role.FULFILLMENT, id="u-lucho")
FRANCO = Actor(name="Franco", role=Role.FULFILLMENT, id="u-franco")
NEGRO = Actor(name="Negro", role=Role.FULFILLMENT, id="u-negro")


@pytest.fixture(autouse=True)
def _fresh_adapters():
    """Every test starts with a fresh lock coordinator and broadcaster."""
    reset_lock_coordinator()
    reset_broadcaster()
    yield
    reset_lock_coordinator()
    reset_broadcaster()


@pytest.fixture()
def broadcaster():
    return get_broadcaster()


@pytest.fixture()
def coordinator_actor():
    return VALE


@pytest.fixture()
def picker():
    return LUCHO


@pytest.fixture()
def verifier():
    return FRANCO
