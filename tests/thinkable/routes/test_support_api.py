import pytest


@pytest.fixture
def student(register):
    return register('student@example.edu')


def test_support_settings_defaults_and_update(client, student) -> None:
    _, headers = student

    assert client.get('/api/neurodivergent/settings', headers=headers).json() == {
        'break_interval': 25,
        'hyperfocus_limit': 90,
        'enable_break_reminders': True,
        'enable_hyperfocus_shield': True,
        'panel_state': 'expanded',
        'panel_position': 'bottom-right',
    }

    updated = client.put(
        '/api/neurodivergent/settings',
        json={'break_interval': 20, 'panel_state': 'Minimized'},
        headers=headers,
    ).json()
    assert updated['break_interval'] == 20
    assert updated['panel_state'] == 'minimized'
    assert updated['hyperfocus_limit'] == 90

    rejected = client.put('/api/neurodivergent/settings', json={'panel_position': 'middle'}, headers=headers)
    assert rejected.status_code == 422


def test_focus_check_reports_break_and_next_break(client, student) -> None:
    _, headers = student
    client.put('/api/neurodivergent/settings', json={'break_interval': 20}, headers=headers)

    result = client.post(
        '/api/neurodivergent/focus-check',
        json={'session_started_at': '2026-03-10T09:00:00', 'checked_at': '2026-03-10T09:20:30'},
        headers=headers,
    ).json()

    assert result == {
        'elapsed_minutes': 20,
        'break_due': True,
        'hyperfocus_warning': False,
        'next_break_at_minutes': 40,
    }


def test_focus_check_respects_disabled_reminders(client, student) -> None:
    _, headers = student
    client.put(
        '/api/neurodivergent/settings',
        json={'break_interval': 20, 'hyperfocus_limit': 30, 'enable_break_reminders': False},
        headers=headers,
    )

    result = client.post(
        '/api/neurodivergent/focus-check',
        json={'session_started_at': '2026-03-10T09:00:00', 'checked_at': '2026-03-10T09:40:00'},
        headers=headers,
    ).json()

    assert result['break_due'] is False
    assert result['hyperfocus_warning'] is True


def test_focus_check_rejects_future_start(client, student) -> None:
    _, headers = student

    response = client.post(
        '/api/neurodivergent/focus-check',
        json={'session_started_at': '2026-03-10T10:00:00', 'checked_at': '2026-03-10T09:00:00'},
        headers=headers,
    )

    assert response.status_code == 400
    assert response.json()['detail'] == 'Session start must not be in the future.'


def test_breathing_and_fidget_tools(client) -> None:
    breathing = client.get('/api/neurodivergent/breathing').json()
    assert [phase['phase'] for phase in breathing['cycle']] == ['inhale', 'hold', 'exhale', 'pause']
    assert sum(entry['seconds'] for entry in breathing['schedule']) == breathing['total_seconds']

    tools = client.get('/api/neurodivergent/fidget-tools').json()
    assert 'stress_ball' in [tool['id'] for tool in tools]


def test_tool_usage_feeds_insights(client, student) -> None:
    _, headers = student

    first = client.post(
        '/api/neurodivergent/usage',
        json={'action': 'break_taken', 'energy_level': 4},
        headers=headers,
    )
    assert first.status_code == 201
    assert first.json()['tool_name'] == 'break_manager'
    client.post('/api/neurodivergent/usage', json={'action': 'break_taken', 'energy_level': 7}, headers=headers)
    client.post('/api/neurodivergent/usage', json={'action': 'Fidget_Used', 'tool_name': 'stress_ball'}, headers=headers)

    insights = client.get('/api/neurodivergent/usage-insights', headers=headers).json()
    assert insights['total_uses'] == 3
    assert insights['most_used_tools'][0] == {'tool_name': 'break_manager', 'count': 2}
    assert insights['average_energy_level'] == 5.5
    assert insights['preferred_time_of_day'] is not None

    assert client.post(
        '/api/neurodivergent/usage', json={'action': 'x', 'energy_level': 11}, headers=headers,
    ).status_code == 422


def test_timer_settings_follow_break_interval(client, student) -> None:
    _, headers = student
    client.put('/api/neurodivergent/settings', json={'break_interval': 20}, headers=headers)

    settings = client.get('/api/student/timer-settings', headers=headers).json()

    assert settings['study_length'] == 20
    assert settings['break_length'] == 5
    assert settings['timer_style'] == 'standard'


def test_study_session_awards_time_achievements(client, seeded, student) -> None:
    _, headers = student

    response = client.post(
        '/api/student/study-sessions',
        json={'mode': 'study', 'duration_minutes': 30},
        headers=headers,
    )

    assert response.status_code == 201
    body = response.json()
    assert body['mode'] == 'study'
    assert {'Quick Learner', 'Day One'} <= set(body['new_achievements'])

    assert client.post(
        '/api/student/study-sessions', json={'mode': 'nap', 'duration_minutes': 30}, headers=headers,
    ).status_code == 422


def test_tts_chunks_use_preset_settings(client, student) -> None:
    _, headers = student

    body = client.post(
        '/api/accessibility/tts/chunks',
        json={'text': 'Hello there. General Kenobi. You are bold.', 'preset': 'READING_SUPPORT', 'max_length': 20},
        headers=headers,
    ).json()

    assert body['chunks'] == ['Hello there.', 'General Kenobi.', 'You are bold.']
    assert body['offsets'] == [0, 12, 27]
    assert body['settings']['rate'] == 0.8
    assert body['settings']['word_highlighting'] is True


def test_tts_settings_round_trip(client, student) -> None:
    _, headers = student

    updated = client.put(
        '/api/accessibility/tts/settings',
        json={'rate': 1.2, 'voice': 'Alex', 'word_highlighting': False},
        headers=headers,
    ).json()
    assert updated['rate'] == 1.2
    assert updated['voice'] == 'Alex'
    assert updated['word_highlighting'] is False

    assert client.get('/api/accessibility/tts/settings', headers=headers).json() == updated
    assert client.put('/api/accessibility/tts/settings', json={'volume': 2}, headers=headers).status_code == 422


def test_tts_usage_buckets_hour(client, student) -> None:
    _, headers = student

    response = client.post('/api/accessibility/tts-usage', json={'characters': 120, 'hour': 7}, headers=headers)

    assert response.status_code == 201
    assert response.json()['time_of_day'] == 'early_morning'
    assert response.json()['tool_name'] == 'text-to-speech'


def test_transform_needs_no_account(client) -> None:
    body = client.post('/api/accessibility/transform', json={'text': 'WOW!! Calm down.', 'preset': 'SENSORY_CALM'}).json()

    assert body['text'] == 'Wow! Calm down.'
    assert body['word_count'] == 3
    assert body['reading_time'] == 1


def test_achievement_listing_and_viewing(client, seeded, student) -> None:
    _, headers = student
    client.post('/api/student/study-sessions', json={'duration_minutes': 30}, headers=headers)

    earned = client.get('/api/achievements', headers=headers).json()
    assert {entry['achievement']['name'] for entry in earned} == {'Quick Learner', 'Day One'}

    fresh = client.get('/api/achievements/new', headers=headers).json()
    viewed = client.post(
        '/api/achievements/viewed',
        json={'user_achievement_ids': [entry['id'] for entry in fresh]},
        headers=headers,
    ).json()
    assert viewed == {'updated': 2}
    assert client.get('/api/achievements/new', headers=headers).json() == []

    stats = client.get('/api/achievements/stats', headers=headers).json()
    assert stats['total_earned'] == 2
    assert stats['total_points'] == 15

    progress = client.get('/api/achievements/progress', headers=headers).json()
    assert progress['metrics']['TOTAL_STUDY_TIME'] == 30
    dedicated = next(entry for entry in progress['progress'] if entry['achievement']['name'] == 'Dedicated Student')
    assert dedicated['progress'] == 25
