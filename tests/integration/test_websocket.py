"""Integration tests for the /ws streaming transport."""

from salesboard.realtime.events import (
    LEADERBOARD_UPDATE,
    NOTIFICATION_ACTIVE,
    NOTIFICATION_CLEAR,
    SALE_ACTIVATION,
)


def _update(token, agent_id, **delta) -> dict:
    return {
        "type": "tl:updateCounters",
        "token": token,
        "data": {"agentId": str(agent_id), "delta": delta},
    }


class TestCounterUpdates:
    def test_delta_broadcasts_celebration_then_leaderboard(self, client, seeded_world):
        with client.websocket_connect("/ws") as viewer, client.websocket_connect("/ws") as tl:
            tl.send_json(_update(seeded_world.tl_token, seeded_world.agent.id, activations=1))

            for socket in (viewer, tl):
                celebration = socket.receive_json()
                assert celebration["type"] == SALE_ACTIVATION
                assert celebration["data"]["newActivationCount"] == 16
                assert celebration["data"]["agentName"] == "Alice"

                board = socket.receive_json()
                assert board["type"] == LEADERBOARD_UPDATE
                assert board["data"]["teams"][0]["avgActivation"] == 80
                assert board["data"]["topStats"]["topAgentMonth"]["activations"] == 16

    def test_http_mutation_reaches_socket_viewers(self, client, seeded_world):
        with client.websocket_connect("/ws") as viewer:
            response = client.patch(
                f"/api/tl/agents/{seeded_world.agent.id}/increment",
                json={"points": 5},
                headers={"Authorization": f"Bearer {seeded_world.tl_token}"},
            )
            assert response.status_code == 200

            frame = viewer.receive_json()
            assert frame["type"] == LEADERBOARD_UPDATE
            assert frame["data"]["teams"][0]["totalPoints"] == 45

    def test_unauthenticated_delta_is_dropped(self, client, seeded_world):
        """No state change, no event, and the socket keeps working."""
        with client.websocket_connect("/ws") as viewer:
            viewer.send_json(_update(None, seeded_world.agent.id, activations=100))
            viewer.send_json(_update("forged-token", seeded_world.agent.id, activations=100))

            # A valid mutation afterwards is the first thing the viewer hears about.
            viewer.send_json(_update(seeded_world.admin_token, seeded_world.agent.id, points=1))
            frame = viewer.receive_json()
            assert frame["type"] == LEADERBOARD_UPDATE
            alice = frame["data"]["teams"][0]["agents"][0]
            assert alice["activations"] == 15
            assert alice["points"] == 41

    def test_foreign_team_delta_is_dropped(self, client, seeded_world):
        with client.websocket_connect("/ws") as viewer:
            viewer.send_json(_update(seeded_world.tl_token, seeded_world.foreign_agent.id, points=50))
            viewer.send_json(_update(seeded_world.tl_token, seeded_world.agent.id, points=1))

            frame = viewer.receive_json()
            bravo = next(t for t in frame["data"]["teams"] if t["name"] == "Team Bravo")
            assert bravo["totalPoints"] == 10

    def test_malformed_frames_are_dropped(self, client, seeded_world):
        with client.websocket_connect("/ws") as viewer:
            viewer.send_text("{not json")
            viewer.send_json({"type": "tl:updateCounters", "token": seeded_world.tl_token, "data": {}})
            viewer.send_json({"type": "no:such-message"})
            viewer.send_json({"type": "join"})

            viewer.send_json(_update(seeded_world.tl_token, seeded_world.agent.id, submissions=1))
            frame = viewer.receive_json()
            assert frame["type"] == LEADERBOARD_UPDATE
            assert frame["data"]["topStats"]["totalSubmissions"] == 5

    def test_binary_frame_is_dropped(self, client, seeded_world):
        with client.websocket_connect("/ws") as viewer:
            viewer.send_bytes(b"\x00\x01garbage")

            viewer.send_json(_update(seeded_world.admin_token, seeded_world.agent.id, points=1))
            frame = viewer.receive_json()
            assert frame["type"] == LEADERBOARD_UPDATE
            assert frame["data"]["teams"][0]["totalPoints"] == 41
            assert client.app.state.hub.connection_count == 1


class TestRooms:
    def test_join_registers_membership(self, client, seeded_world):
        hub = client.app.state.hub
        with client.websocket_connect("/ws") as viewer:
            viewer.send_json({"type": "join", "room": "team-alpha"})
            # Round-trip a mutation so the join has certainly been handled.
            viewer.send_json(_update(seeded_world.tl_token, seeded_world.agent.id, points=1))
            viewer.receive_json()

            assert len(hub.room_members("team-alpha")) == 1
            assert hub.connection_count == 1


class TestNotifications:
    def test_push_and_clear_over_socket(self, client, seeded_world):
        with client.websocket_connect("/ws") as admin:
            admin.send_json(
                {
                    "type": "admin:pushNotification",
                    "token": seeded_world.admin_token,
                    "data": {"type": "text", "message": "Hi", "duration": 60000},
                }
            )
            active = admin.receive_json()
            assert active["type"] == NOTIFICATION_ACTIVE
            assert active["data"]["message"] == "Hi"
            assert active["data"]["duration"] == 60000

            admin.send_json({"type": "admin:clearNotification", "token": seeded_world.admin_token})
            cleared = admin.receive_json()
            assert cleared == {"type": NOTIFICATION_CLEAR, "data": {}}

    def test_timer_expiry_reaches_viewers(self, client, seeded_world):
        with client.websocket_connect("/ws") as viewer:
            response = client.post(
                "/api/admin/notifications",
                json={"type": "text", "title": "Quick", "duration": 100},
                headers={"Authorization": f"Bearer {seeded_world.admin_token}"},
            )
            assert response.status_code == 200

            assert viewer.receive_json()["type"] == NOTIFICATION_ACTIVE
            assert viewer.receive_json()["type"] == NOTIFICATION_CLEAR

        assert client.get("/api/notifications/active").status_code == 204

    def test_tl_push_is_dropped(self, client, seeded_world):
        with client.websocket_connect("/ws") as viewer:
            viewer.send_json(
                {
                    "type": "admin:pushNotification",
                    "token": seeded_world.tl_token,
                    "data": {"type": "text", "message": "sneaky"},
                }
            )
            viewer.send_json({"type": "admin:clearNotification", "token": seeded_world.admin_token})

            # Only the admin's clear produces a frame.
            assert viewer.receive_json() == {"type": NOTIFICATION_CLEAR, "data": {}}
        assert client.get("/api/notifications/active").status_code == 204
