"""Unit tests for the ESPN sources."""
import threading

import pytest
import responses

from processor.errors import SourceCancelled, SourceDataError, SourceTransportError
from processor.models import StructuredGame
from sources.espn import (
    EspnSource,
    ScoreboardQuery,
    TeamScheduleQuery,
    normalize_scoreboard,
    normalize_team_schedule,
    parse_espn_time,
    split_competitors,
)

SCOREBOARD_URL = 'https://espn.test/football/nfl/scoreboard'
TEAM_URL = 'https://espn.test/basketball/mens-college-basketball/teams/264'

SEAHAWKS = ScoreboardQuery(SCOREBOARD_URL, 'Seattle Seahawks', 'SEA')
HUSKIES = TeamScheduleQuery(TEAM_URL, "Washington Huskies (Men's Basketball)", 'Alaska Airlines Arena')


def competitor(abbreviation, display_name, home_away, team_id=None):
    data = {
        'homeAway': home_away,
        'team': {'abbreviation': abbreviation, 'displayName': display_name},
    }
    if team_id is not None:
        data['id'] = team_id
    return data


def scoreboard_event(competitors, start='2026-02-15T03:30Z', status='STATUS_SCHEDULED', venue='Lumen Field'):
    return {
        'date': start,
        'competitions': [{
            'date': start,
            'venue': {'fullName': venue},
            'status': {'type': {'name': status}},
            'competitors': competitors,
        }],
    }


def team_payload(next_events):
    return {'team': {'id': '264', 'uid': 's:40~l:41~t:264', 'nextEvent': next_events}}


def schedule_event(home_id='264', venue='Alaska Airlines Arena', start='2026-02-15T04:00Z', status='STATUS_SCHEDULED'):
    away_id = '2483' if home_id == '264' else '264'
    away_name = 'Oregon Ducks' if home_id == '264' else 'Washington Huskies'
    home_name = 'Washington Huskies' if home_id == '264' else 'Oregon Ducks'
    return {
        'competitions': [{
            'date': start,
            'venue': {'fullName': venue},
            'status': {'type': {'name': status}},
            'competitors': [
                competitor('ORE', away_name, 'away', team_id=away_id),
                competitor('WASH', home_name, 'home', team_id=home_id),
            ],
        }],
    }


class TestParseEspnTime:
    """Test cases for ESPN timestamps."""

    def test_parse(self):
        """Test minute-resolution UTC timestamps."""
        parsed = parse_espn_time('2026-02-15T03:30Z', 'team')

        assert parsed.isoformat() == '2026-02-15T03:30:00+00:00'

    @pytest.mark.parametrize('value', [None, '', '2026-02-15 03:30'])
    def test_invalid(self, value):
        """Test missing or malformed timestamps fail the source."""
        with pytest.raises(SourceDataError):
            parse_espn_time(value, 'team')


class TestSplitCompetitors:
    """Test cases for finding home and away teams."""

    def test_home_listed_second(self):
        """Test the homeAway flag wins over payload order."""
        away = competitor('NE', 'New England Patriots', 'away')
        home = competitor('SEA', 'Seattle Seahawks', 'home')

        assert split_competitors([away, home], 'team') == (home, away)

    def test_too_few_competitors(self):
        """Test a single competitor is skipped."""
        assert split_competitors([competitor('SEA', 'Seattle Seahawks', 'home')], 'team') is None

    def test_no_home_flag(self):
        """Test a game with no home competitor is a data error."""
        with pytest.raises(SourceDataError):
            split_competitors([competitor('A', 'A', 'away'), competitor('B', 'B', 'away')], 'team')


class TestNormalizeScoreboard:
    """Test cases for league scoreboards."""

    def test_home_game_today(self, window):
        """Test a Seahawks home game listed second becomes today's game."""
        payload = {'events': [scoreboard_event([
            competitor('NE', 'New England Patriots', 'away'),
            competitor('SEA', 'Seattle Seahawks', 'home'),
        ])]}

        found = normalize_scoreboard(payload, SEAHAWKS, window)

        assert len(found) == 1
        bucket, game = found[0]
        assert bucket == 'today'
        assert game == StructuredGame(
            team_name='Seattle Seahawks',
            opponent='New England Patriots',
            venue='Lumen Field',
            local_time='7:30 PM',
            raw_time=1771126200
        )

    def test_away_game_skipped(self, window):
        """Test games where the Seattle team is away are dropped."""
        payload = {'events': [scoreboard_event([
            competitor('SEA', 'Seattle Seahawks', 'away'),
            competitor('NE', 'New England Patriots', 'home'),
        ])]}

        assert normalize_scoreboard(payload, SEAHAWKS, window) == []

    def test_canceled_game_skipped(self, window):
        """Test canceled games are dropped."""
        payload = {'events': [scoreboard_event(
            [competitor('NE', 'New England Patriots', 'away'), competitor('SEA', 'Seattle Seahawks', 'home')],
            status='STATUS_CANCELED'
        )]}

        assert normalize_scoreboard(payload, SEAHAWKS, window) == []

    def test_tomorrow_game(self, window):
        """Test a game on the next local day is tomorrow's."""
        payload = {'events': [scoreboard_event(
            [competitor('NE', 'New England Patriots', 'away'), competitor('SEA', 'Seattle Seahawks', 'home')],
            start='2026-02-15T21:05Z'
        )]}

        found = normalize_scoreboard(payload, SEAHAWKS, window)

        assert [bucket for bucket, _ in found] == ['tomorrow']
        assert found[0][1].local_time == '1:05 PM'

    def test_other_day_skipped(self, window):
        """Test games outside the window are dropped."""
        payload = {'events': [scoreboard_event(
            [competitor('NE', 'New England Patriots', 'away'), competitor('SEA', 'Seattle Seahawks', 'home')],
            start='2026-02-20T03:30Z'
        )]}

        assert normalize_scoreboard(payload, SEAHAWKS, window) == []

    def test_missing_events_list(self, window):
        """Test a payload without events fails the source."""
        with pytest.raises(SourceDataError):
            normalize_scoreboard({'leagues': []}, SEAHAWKS, window)

    def test_missing_home_abbreviation(self, window):
        """Test a home team without an abbreviation fails the source."""
        payload = {'events': [scoreboard_event([
            competitor('NE', 'New England Patriots', 'away'),
            competitor('', 'Seattle Seahawks', 'home'),
        ])]}

        with pytest.raises(SourceDataError):
            normalize_scoreboard(payload, SEAHAWKS, window)


class TestNormalizeTeamSchedule:
    """Test cases for single-team schedules."""

    def test_home_game(self, window):
        """Test a home game at the home venue is kept."""
        found = normalize_team_schedule(team_payload([schedule_event()]), HUSKIES, window)

        assert len(found) == 1
        bucket, game = found[0]
        assert bucket == 'today'
        assert game.opponent == 'Oregon Ducks'
        assert game.venue == 'Alaska Airlines Arena'
        assert game.local_time == '8:00 PM'

    def test_off_venue_game_skipped(self, window):
        """Test a home game at another venue is dropped."""
        payload = team_payload([schedule_event(venue='Climate Pledge Arena')])

        assert normalize_team_schedule(payload, HUSKIES, window) == []

    def test_road_game_skipped(self, window):
        """Test a game where the team is away is dropped."""
        payload = team_payload([schedule_event(home_id='2483')])

        assert normalize_team_schedule(payload, HUSKIES, window) == []

    def test_canceled_game_skipped(self, window):
        """Test canceled games are dropped."""
        payload = team_payload([schedule_event(status='STATUS_CANCELED')])

        assert normalize_team_schedule(payload, HUSKIES, window) == []

    def test_no_upcoming_events(self, window):
        """Test a team with nothing scheduled produces nothing."""
        assert normalize_team_schedule(team_payload([]), HUSKIES, window) == []

    @pytest.mark.parametrize('payload', [
        {},
        {'team': {}},
        {'team': {'id': '264', 'uid': ''}},
        [],
    ])
    def test_empty_team_payload(self, window, payload):
        """Test missing team identity fails the source."""
        with pytest.raises(SourceDataError, match='empty response payload'):
            normalize_team_schedule(payload, HUSKIES, window)


class TestEspnSource:
    """Test cases for the batched ESPN source."""

    @responses.activate
    def test_fetch_combines_queries(self, window):
        """Test every query's games are bucketed together."""
        responses.add(responses.GET, SCOREBOARD_URL, json={'events': [scoreboard_event(
            [competitor('NE', 'New England Patriots', 'away'), competitor('SEA', 'Seattle Seahawks', 'home')],
            start='2026-02-15T21:05Z'
        )]})
        responses.add(responses.GET, TEAM_URL, json=team_payload([schedule_event()]))

        today, tomorrow = EspnSource([SEAHAWKS, HUSKIES]).fetch(window)

        assert [game.team_name for game in today] == ["Washington Huskies (Men's Basketball)"]
        assert [game.team_name for game in tomorrow] == ['Seattle Seahawks']
        assert len(responses.calls) == 2

    @responses.activate
    def test_non_2xx_includes_body(self, window):
        """Test upstream errors carry the status and body."""
        responses.add(responses.GET, SCOREBOARD_URL, body='upstream exploded', status=503)

        with pytest.raises(SourceTransportError) as exc_info:
            EspnSource([SEAHAWKS]).fetch(window)

        assert exc_info.value.status_code == 503
        assert 'upstream exploded' in str(exc_info.value)

    @responses.activate
    def test_invalid_json(self, window):
        """Test an undecodable body is a data error."""
        responses.add(responses.GET, SCOREBOARD_URL, body='<html>not json</html>', status=200)

        with pytest.raises(SourceDataError):
            EspnSource([SEAHAWKS]).fetch(window)

    @responses.activate
    def test_cancelled_before_request(self, window):
        """Test a set cancellation scope stops the source before any request."""
        cancelled = threading.Event()
        cancelled.set()

        with pytest.raises(SourceCancelled):
            EspnSource([SEAHAWKS]).fetch(window, cancelled)

        assert len(responses.calls) == 0
