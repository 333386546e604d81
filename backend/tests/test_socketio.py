def _events(sio, name):
    return [pkt["args"][0] if pkt["args"] else None for pkt in sio.get_received() if pkt["name"] == name]


def _names(received):
    return [pkt["name"] for pkt in received]


def _host(sio_factory, settings=None):
    host = sio_factory()
    ack = host.emit("host:create", settings or {}, callback=True)
    assert ack["ok"] is True
    return host, ack["sessionCode"]


def _player(sio_factory, code, name):
    player = sio_factory()
    ack = player.emit("player:join", {"sessionCode": code, "displayName": name}, callback=True)
    assert ack["ok"] is True, ack
    return player, ack["playerId"]


def test_host_create_returns_snapshot(sio_factory):
    host = sio_factory()
    host.emit("host:create", {"allowLateBuzzes": False})

    created = _events(host, "session:created")

    assert len(created) == 1
    data = created[0]
    assert len(data["sessionCode"]) == 6
    assert data["session"]["code"] == data["sessionCode"]
    assert data["session"]["players"] == []
    assert data["session"]["settings"]["allowLateBuzzes"] is False
    assert data["session"]["round"]["status"] == "waiting"


def test_host_create_rejects_malformed_settings(sio_factory):
    host = sio_factory()
    ack = host.emit("host:create", {"buzzCooldownMs": "fast"}, callback=True)

    assert ack == {"ok": False, "error": "INVALID_PAYLOAD"}
    errors = _events(host, "session:error")
    assert errors[0]["code"] == "INVALID_PAYLOAD"


def test_join_notifies_room(sio_factory):
    host, code = _host(sio_factory)
    host.get_received()

    player = sio_factory()
    player.emit("player:join", {"sessionCode": code.lower(), "displayName": " Alice "})

    joined = _events(player, "session:joined")
    assert joined[0]["session"]["players"][0]["displayName"] == "Alice"
    assert "sid" not in joined[0]["session"]["players"][0]

    announced = _events(host, "player:joined")
    assert announced[0]["id"] == joined[0]["playerId"]
    assert announced[0]["isConnected"] is True


def test_join_rejections_are_surfaced(sio_factory):
    host, code = _host(sio_factory)
    _player(sio_factory, code, "Alice")

    dup = sio_factory()
    ack = dup.emit("player:join", {"sessionCode": code, "displayName": "ALICE"}, callback=True)
    assert ack == {"ok": False, "error": "NAME_TAKEN"}
    assert _events(dup, "session:error")[0]["code"] == "NAME_TAKEN"

    lost = sio_factory()
    ack = lost.emit("player:join", {"sessionCode": "ZZZZZZ", "displayName": "Bob"}, callback=True)
    assert ack["error"] == "SESSION_NOT_FOUND"

    ack = lost.emit("player:join", {"sessionCode": code}, callback=True)
    assert ack["error"] == "INVALID_PAYLOAD"

    ack = lost.emit("player:join", "not-an-object", callback=True)
    assert ack["error"] == "INVALID_PAYLOAD"


def test_capacity_is_enforced(sio_factory):
    host, code = _host(sio_factory, {"maxPlayersPerSession": 1})
    _player(sio_factory, code, "Alice")

    late = sio_factory()
    ack = late.emit("player:join", {"sessionCode": code, "displayName": "Bob"}, callback=True)
    assert ack["error"] == "CAPACITY_EXCEEDED"


def test_buzz_flow_and_mark_correct(sio_factory):
    host, code = _host(sio_factory)
    host.emit("host:addTeam", {"name": "Red"})
    team_id = _events(host, "team:added")[0]["id"]

    alice, alice_id = _player(sio_factory, code, "Alice")
    bob, bob_id = _player(sio_factory, code, "Bob")
    assert host.emit("host:assignPlayerToTeam", {"playerId": alice_id, "teamId": team_id}, callback=True)["ok"]

    host.emit("host:startRound")
    started = _events(host, "round:started")
    assert started[0]["status"] == "open"
    assert started[0]["questionNumber"] == 1
    bob.get_received()

    assert alice.emit("player:buzz", callback=True) == {"ok": True, "position": 1}
    assert bob.emit("player:buzz", callback=True) == {"ok": True, "position": 2}

    received = bob.get_received()
    buzzes = [pkt["args"][0] for pkt in received if pkt["name"] == "round:buzzReceived"]
    assert [(b["playerId"], b["position"]) for b in buzzes] == [(alice_id, 1), (bob_id, 2)]
    locked = [pkt["args"][0] for pkt in received if pkt["name"] == "round:locked"]
    assert len(locked) == 1
    assert locked[0]["activePlayerId"] == alice_id

    host.get_received()
    host.emit("host:markCorrect")
    received = host.get_received()
    correct = [pkt["args"][0] for pkt in received if pkt["name"] == "round:correct"]
    assert correct == [{"playerId": alice_id, "playerName": "Alice", "teamId": team_id}]
    updated = [pkt["args"][0] for pkt in received if pkt["name"] == "session:updated"][-1]
    assert updated["teams"][0]["score"] == 1
    assert updated["round"]["status"] == "ended"
    assert updated["roundHistory"][0]["winnerId"] == alice_id


def test_rejected_buzz_is_not_echoed(sio_factory):
    host, code = _host(sio_factory)
    alice, _ = _player(sio_factory, code, "Alice")
    alice.get_received()

    assert alice.emit("player:buzz", callback=True) == {"ok": False}
    assert "session:error" not in _names(alice.get_received())


def test_unjoined_buzz_is_silent(sio_factory):
    stranger = sio_factory()
    stranger.get_received()
    assert stranger.emit("player:buzz", callback=True) == {"ok": False}
    assert stranger.get_received() == []


def test_host_actions_require_host(sio_factory):
    host, code = _host(sio_factory)
    alice, _ = _player(sio_factory, code, "Alice")
    alice.get_received()

    ack = alice.emit("host:startRound", callback=True)

    assert ack == {"ok": False, "error": "NOT_HOST"}
    assert _events(alice, "session:error")[0]["code"] == "NOT_HOST"


def test_pass_and_skip(sio_factory):
    host, code = _host(sio_factory)
    players = [_player(sio_factory, code, name) for name in ("A", "B", "C")]
    host.emit("host:startRound")
    for sio, _ in players:
        sio.emit("player:buzz")
    (_, a_id), (_, b_id), (_, c_id) = players
    host.get_received()

    host.emit("host:markPass")
    passed = _events(host, "round:playerPassed")
    assert passed == [{"passedPlayerId": a_id, "newActivePlayerId": b_id}]

    host.emit("host:skipPlayer", {"playerId": c_id})
    updated = _events(host, "session:updated")[-1]
    assert [(e["playerId"], e["position"]) for e in updated["round"]["buzzQueue"]] == [(b_id, 1)]
    assert updated["round"]["activePlayerId"] == b_id

    assert host.emit("host:skipPlayer", {"playerId": "nobody"}, callback=True) == {"ok": False}


def test_reset_round(sio_factory):
    host, code = _host(sio_factory)
    alice, _ = _player(sio_factory, code, "Alice")
    host.emit("host:startRound")
    alice.emit("player:buzz")
    alice.get_received()

    host.emit("host:resetRound")

    reset = _events(alice, "round:reset")
    assert reset[0]["status"] == "waiting"
    assert reset[0]["questionNumber"] == 1
    assert reset[0]["buzzQueue"] == []


def test_teams_and_scores(sio_factory):
    host, code = _host(sio_factory)
    alice, alice_id = _player(sio_factory, code, "Alice")
    host.emit("host:addTeam", {"name": "Red"})
    team = _events(alice, "team:added")[0]

    assert alice.emit("player:setTeam", {"teamId": team["id"]}, callback=True) == {"ok": True}
    assert _events(host, "player:updated")[-1]["teamId"] == team["id"]
    assert alice.emit("player:setTeam", {"teamId": "missing"}, callback=True) == {"ok": False}

    host.emit("host:updateTeamScore", {"teamId": team["id"], "delta": -2})
    assert _events(alice, "team:scoreUpdated") == [{"teamId": team["id"], "score": -2}]
    ack = host.emit("host:updateTeamScore", {"teamId": team["id"], "delta": "1"}, callback=True)
    assert ack["error"] == "INVALID_PAYLOAD"

    host.emit("host:removeTeam", {"teamId": team["id"]})
    received = alice.get_received()
    assert [pkt["args"][0] for pkt in received if pkt["name"] == "team:removed"] == [{"teamId": team["id"]}]
    updated = [pkt["args"][0] for pkt in received if pkt["name"] == "session:updated"][-1]
    assert updated["teams"] == []
    assert updated["players"][0]["teamId"] is None


def test_update_settings(sio_factory):
    host, code = _host(sio_factory)
    alice, _ = _player(sio_factory, code, "Alice")
    alice.get_received()

    host.emit("host:updateSettings", {"oneBuzzPerTeam": True})

    assert _events(alice, "session:updated")[0]["settings"]["oneBuzzPerTeam"] is True


def test_disconnect_and_rejoin(sio_factory):
    host, code = _host(sio_factory)
    alice, alice_id = _player(sio_factory, code, "Alice")
    host.get_received()

    alice.disconnect()
    gone = _events(host, "player:updated")
    assert gone[-1]["id"] == alice_id
    assert gone[-1]["isConnected"] is False

    again = sio_factory()
    ack = again.emit("player:rejoin", {"sessionCode": code, "playerId": alice_id}, callback=True)
    assert ack == {"ok": True, "playerId": alice_id}
    rejoined = _events(again, "session:rejoined")
    assert rejoined[0]["session"]["players"][0]["isConnected"] is True
    assert _events(host, "player:updated")[-1]["isConnected"] is True

    ack = again.emit("player:rejoin", {"sessionCode": code, "playerId": "nope"}, callback=True)
    assert ack["error"] == "PLAYER_NOT_FOUND"


def test_kick_player(sio_factory):
    host, code = _host(sio_factory)
    alice, alice_id = _player(sio_factory, code, "Alice")
    bob, _ = _player(sio_factory, code, "Bob")
    alice.get_received()
    bob.get_received()

    assert host.emit("host:kickPlayer", {"playerId": alice_id}, callback=True) == {"ok": True}

    assert _events(alice, "player:kicked") == [{"playerId": alice_id}]
    received = bob.get_received()
    assert [pkt["args"][0] for pkt in received if pkt["name"] == "player:left"] == [{"playerId": alice_id}]

    # No longer in the room, and no longer a player.
    host.emit("host:startRound")
    assert _events(alice, "round:started") == []
    assert alice.emit("player:buzz", callback=True) == {"ok": False}

    assert host.emit("host:kickPlayer", {"playerId": alice_id}, callback=True) == {"ok": False}


def test_end_session(flask_app, sio_factory):
    host, code = _host(sio_factory)
    alice, alice_id = _player(sio_factory, code, "Alice")
    alice.get_received()

    host.emit("host:endSession")

    assert _events(alice, "session:ended") == [{"code": code, "reason": "host"}]
    service = flask_app.extensions["buzzer"]
    assert service.registry.get(code) is None
    ack = alice.emit("player:rejoin", {"sessionCode": code, "playerId": alice_id}, callback=True)
    assert ack["error"] == "PLAYER_NOT_FOUND"


def test_corrupt_session_is_ended(flask_app, sio_factory):
    host, code = _host(sio_factory)
    alice, alice_id = _player(sio_factory, code, "Alice")
    host.emit("host:startRound")
    host.get_received()

    service = flask_app.extensions["buzzer"]
    service.registry.get(code).players[alice_id].team_id = "vanished"

    ack = alice.emit("player:buzz", callback=True)

    assert ack == {"ok": False, "error": "SESSION_CORRUPT"}
    assert _events(host, "session:ended") == [{"code": code, "reason": "corrupt"}]
    assert service.registry.get(code) is None


def test_second_join_from_same_connection_replaces_player(sio_factory):
    host, code = _host(sio_factory)
    other_host, other_code = _host(sio_factory)
    alice, alice_id = _player(sio_factory, code, "Alice")
    host.get_received()

    ack = alice.emit("player:join", {"sessionCode": other_code, "displayName": "Alice"}, callback=True)
    assert ack["ok"] is True
    assert ack["playerId"] != alice_id

    received = host.get_received()
    assert [pkt["args"][0] for pkt in received if pkt["name"] == "player:left"] == [{"playerId": alice_id}]
    updated = [pkt["args"][0] for pkt in received if pkt["name"] == "session:updated"][-1]
    assert updated["players"] == []

    # Only the new session's room hears from this connection now.
    host.emit("host:startRound")
    assert _events(alice, "round:started") == []

    other_host.get_received()
    alice.disconnect()
    gone = _events(other_host, "player:updated")
    assert gone[-1]["id"] == ack["playerId"]
    assert gone[-1]["isConnected"] is False

    late = sio_factory()
    assert late.emit("player:join", {"sessionCode": code, "displayName": "Alice"}, callback=True)["ok"] is True


def test_host_assigns_team(sio_factory):
    host, code = _host(sio_factory)
    alice, alice_id = _player(sio_factory, code, "Alice")
    host.emit("host:addTeam", {"name": "Red"})
    team_id = _events(alice, "team:added")[0]["id"]

    ack = host.emit("host:assignPlayerToTeam", {"playerId": alice_id, "teamId": team_id}, callback=True)

    assert ack == {"ok": True}
    updated = _events(alice, "player:updated")
    assert [(p["id"], p["teamId"]) for p in updated] == [(alice_id, team_id)]
    ack = host.emit("host:assignPlayerToTeam", {"playerId": "nobody", "teamId": team_id}, callback=True)
    assert ack == {"ok": False}
