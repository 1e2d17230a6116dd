import pytest
from orders.order.actors import Actor, Role
from orders.order.errors import InvalidInput


class TestActorBuild:
    def test_build_from_strings(self):
        actor = Actor.build(" Lucho ", "fulfillment", "u-1")

        assert actor == Actor(name="Lucho", role=Role.FULFILLMENT, id="u-1")
        assert actor.is_fulfillment
        assert not actor.is_coordinator

    def test_blank_id_becomes_none(self):
        assert Actor.build("Vale", Role.COORDINATOR, "").id is None

    def test_name_is_required(self):
        with pytest.raises(InvalidInput):
            Actor.build("  ", "coordinator")

    def test_unknown_role(self):
        with pytest.raises(InvalidInput):
            Actor.build("Vale", "admin")
