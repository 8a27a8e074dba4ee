from __future__ import annotations

import json

from conftest import make_record

from leafwise.history import HistoryStore, get_history_store
from leafwise.storage import events_path, history_path


def _events() -> list[dict]:
    path = events_path()
    if not path.exists():
        return []
    return [json.loads(line) for line in path.read_text(encoding='utf-8').splitlines() if line.strip()]


def test_missing_history_file_reads_as_empty(tmp_path) -> None:
    store = HistoryStore(tmp_path / 'history.json')

    assert store.load() == []
    assert store.latest() is None


def test_entries_are_newest_first_and_capped(tmp_path) -> None:
    store = HistoryStore(tmp_path / 'history.json', max_entries=5)

    added = [store.add(image=f'data:image/png;base64,{n}', result=make_record(common_name=f'Plant {n}')) for n in range(7)]

    entries = store.load()
    assert [entry.result.common_name for entry in entries] == ['Plant 6', 'Plant 5', 'Plant 4', 'Plant 3', 'Plant 2']
    assert store.latest().id == added[-1].id
    assert store.get(added[0].id) is None
    assert store.get(added[3].id).result.common_name == 'Plant 3'


def test_history_file_uses_camel_case_keys(tmp_path) -> None:
    path = tmp_path / 'history.json'
    HistoryStore(path).add(image='data:image/png;base64,AA==', result=make_record())

    payload = json.loads(path.read_text(encoding='utf-8'))

    result = payload['entries'][0]['result']
    assert result['commonName'] == 'Snake Plant'
    assert result['toxicityToPets'] == 'Mildly toxic'
    assert 'common_name' not in result


def test_corrupt_history_file_is_treated_as_empty(tmp_path) -> None:
    path = tmp_path / 'history.json'
    path.write_text('{not json', encoding='utf-8')
    store = HistoryStore(path)

    assert store.load() == []

    store.add(image='data:image/png;base64,AA==', result=make_record())
    assert len(store.load()) == 1


def test_clear_removes_entries_and_logs_event(tmp_path) -> None:
    store = HistoryStore(tmp_path / 'history.json')
    store.add(image='data:image/png;base64,AA==', result=make_record())

    store.clear()
    store.clear()

    assert store.load() == []
    assert [row['event'] for row in _events()] == ['history_added', 'history_cleared', 'history_cleared']


def test_default_store_lives_in_data_dir(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv('HISTORY_MAX_ENTRIES', '2')

    store = get_history_store()

    assert store.path == history_path()
    assert store.path.parent == tmp_path / 'data'
    assert store.max_entries == 2
