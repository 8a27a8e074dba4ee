from __future__ import annotations

from conftest import make_record

from leafwise.share_text import clipboard_text, speech_text


def test_speech_text_reads_name_description_and_care() -> None:
    record = make_record(description='A hardy succulent', care_tips='Water sparingly')

    assert speech_text(record) == (
        'Plant: Snake Plant. Scientific Name: Dracaena trifasciata.\n'
        'Description: A hardy succulent.\n'
        'Care Tips: Water sparingly.'
    )


def test_clipboard_text_is_compact() -> None:
    record = make_record(description='A hardy succulent', care_tips='Water sparingly')

    assert clipboard_text(record) == (
        'Plant: Snake Plant (Dracaena trifasciata)\n'
        'Description: A hardy succulent\n'
        'Care: Water sparingly'
    )
