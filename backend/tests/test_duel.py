import pytest

from impostor.game.duel import SAFE, UNSAFE
from impostor.game.errors import ValidationError


@pytest.fixture()
def duel_room(driver, service):
    room = driver.lobby(3)
    third = room.players[2]
    third.lives = 0
    third.is_ghost = True
    with service.lock:
        assert service.engine.duel.start(room) is True
    return room


def _current(service, room):
    return room.get_player(service.engine.duel.current_duelist_id(room))


def _other(room, player):
    return next(p for p in room.living_players() if p.id != player.id)


def test_duel_starts_with_two_living_players(duel_room, transport):
    assert duel_room.phase == 'HEAD_TO_HEAD'
    assert duel_room.duelist_ids == ['p1', 'p2']
    start = transport.last('head_to_head_start')
    assert start['duelistIds'] == ['p1', 'p2']
    assert start['turnPlayerId'] == 'p1'


def test_duel_refuses_wrong_player_count(driver, service):
    room = driver.lobby(3)
    with service.lock:
        assert service.engine.duel.start(room) is False
    assert room.phase == 'LOBBY'


def test_bonus_cards_become_lives(driver, service):
    room = driver.lobby(3)
    room.players[2].lives = 0
    room.players[2].is_ghost = True
    room.players[0].has_bonus_card = True

    with service.lock:
        service.engine.duel.start(room)

    assert room.players[0].lives == driver.config.MAX_LIVES + 1
    assert room.players[0].has_bonus_card is False


def test_exactly_one_safe_button_each_turn(duel_room, driver, service):
    for _ in range(6):
        assert sorted(duel_room.h2h_buttons) == [SAFE, UNSAFE, UNSAFE]
        current = _current(service, duel_room)
        service.duel_action(current.id, duel_room.id, duel_room.h2h_buttons.index(SAFE))
        driver.advance(driver.config.DUEL_TURN_DELAY_SEC)


def test_button_layout_is_not_broadcast(duel_room, transport):
    update = transport.last('room_update')
    assert update['h2hButtonCount'] == 3
    assert 'h2hButtons' not in update


def test_turns_alternate(duel_room, driver, service, transport):
    first = _current(service, duel_room)
    service.duel_action(first.id, duel_room.id, duel_room.h2h_buttons.index(SAFE))

    result = transport.last('head_to_head_result')
    assert result['playerId'] == first.id
    assert result['isSafe'] is True
    assert result['lives'] == driver.config.MAX_LIVES

    driver.advance(driver.config.DUEL_TURN_DELAY_SEC)
    second = _current(service, duel_room)
    assert second.id != first.id
    assert transport.last('head_to_head_turn') == {'turnPlayerId': second.id}


def test_out_of_turn_press_is_ignored(duel_room, service):
    waiting = _other(duel_room, _current(service, duel_room))
    assert service.duel_action(waiting.id, duel_room.id, 0) is False


def test_press_ignored_while_result_is_shown(duel_room, service):
    first = _current(service, duel_room)
    service.duel_action(first.id, duel_room.id, duel_room.h2h_buttons.index(SAFE))
    assert service.duel_action(first.id, duel_room.id, 0) is False


@pytest.mark.parametrize('index', [3, -1, 'x', None, False])
def test_button_index_is_validated(duel_room, service, index):
    current = _current(service, duel_room)
    with pytest.raises(ValidationError):
        service.duel_action(current.id, duel_room.id, index)


def test_unsafe_press_costs_a_life(duel_room, service):
    current = _current(service, duel_room)
    service.duel_action(current.id, duel_room.id, duel_room.h2h_buttons.index(UNSAFE))
    assert current.lives == 2


def test_losing_last_life_ends_game_then_lobby(duel_room, driver, service, transport):
    loser = _current(service, duel_room)
    winner = _other(duel_room, loser)
    loser.lives = 1

    service.duel_action(loser.id, duel_room.id, duel_room.h2h_buttons.index(UNSAFE))
    assert loser.is_ghost is True

    driver.advance(driver.config.DUEL_DEATH_DELAY_SEC)
    assert duel_room.phase == 'GAME_OVER'
    over = transport.last('game_over')
    assert over['winner'] == winner.name
    assert over['winnerId'] == winner.id

    driver.advance(driver.config.GAME_OVER_RESET_SEC)
    assert duel_room.phase == 'LOBBY'
    assert all(p.lives == driver.config.MAX_LIVES for p in duel_room.players)
    assert not any(p.is_ghost for p in duel_room.players)


def test_duelist_leaving_hands_opponent_the_win(duel_room, service, transport):
    leaver = _current(service, duel_room)
    winner = _other(duel_room, leaver)

    service.leave(leaver.id)

    assert duel_room.phase == 'GAME_OVER'
    assert transport.last('game_over')['winnerId'] == winner.id


def test_ghost_bonus_card_never_revives(driver, service):
    room = driver.lobby(3)
    ghost = room.players[2]
    ghost.lives = 0
    ghost.is_ghost = True
    ghost.has_bonus_card = True

    with service.lock:
        service.engine.duel.start(room)

    assert ghost.lives == 0
    assert ghost.alive is False
    assert ghost.id not in room.duelist_ids
