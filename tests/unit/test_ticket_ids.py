import re

from geobus.domain.ticket_ids import generate_ticket_id


def test_ticket_id_shape():
    assert re.fullmatch(r"TICKET\d{13}[0-9A-F]{8}", generate_ticket_id())


def test_ticket_ids_do_not_repeat_within_a_millisecond_burst():
    ids = {generate_ticket_id() for _ in range(2000)}
    assert len(ids) == 2000
