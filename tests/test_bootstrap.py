from downlink.world.state import MINIMUM_MISSIONS, World


def test_world_loads_bundled_data(world: World):
    assert len(world.companies) >= 2
    assert "bridge" in world.dictionary
    for server in world.public_servers:
        assert world.computer_by_identity(server.identity) is server


def test_available_missions_are_topped_up(world: World):
    missions = world.update_available_missions()
    assert len(missions) == MINIMUM_MISSIONS
    mission = world.get_next_mission()
    assert mission.status == "Underway"
    assert mission.target is not mission.sponsor
    assert len(world.available_missions) == MINIMUM_MISSIONS
