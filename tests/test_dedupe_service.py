from unittest.mock import Mock

from convo_core.services.dedupe_service import outbound_id, reserve_outbound, safe_send


def db_with_rowcounts(*rowcounts):
    db = Mock()
    db.execute.side_effect = [Mock(rowcount=count) for count in rowcounts]
    return db


class TestOutboundId:
    def test_suffix(self):
        assert outbound_id("wamid.123") == "wamid.123-out"

    def test_missing(self):
        assert outbound_id(None) is None
        assert outbound_id("  ") is None


class TestReserveOutbound:
    def test_insert_wins(self):
        db = db_with_rowcounts(1)
        assert reserve_outbound(db, tenant_id="t1", channel="whatsapp", message_id="m-out") is True

    def test_conflict_loses(self):
        db = db_with_rowcounts(0)
        assert reserve_outbound(db, tenant_id="t1", channel="whatsapp", message_id="m-out") is False


class TestSafeSend:
    def test_concurrent_duplicates_send_once(self):
        db = db_with_rowcounts(1, 0)
        send = Mock(return_value=True)

        first = safe_send(db, tenant_id="t1", channel="whatsapp", message_id="m1", to="+1", text="hola", send=send)
        second = safe_send(db, tenant_id="t1", channel="whatsapp", message_id="m1", to="+1", text="hola", send=send)

        assert first is True
        assert second is True
        send.assert_called_once_with("+1", "hola", "t1")

    def test_failed_send_releases_reservation(self):
        db = db_with_rowcounts(1)
        send = Mock(return_value=False)

        ok = safe_send(db, tenant_id="t1", channel="whatsapp", message_id="m1", to="+1", text="hola", send=send)

        assert ok is False
        db.query.return_value.filter.return_value.delete.assert_called_once_with(synchronize_session=False)

    def test_sender_exception_is_a_failed_send(self):
        db = db_with_rowcounts(1)
        send = Mock(side_effect=RuntimeError("provider down"))

        ok = safe_send(db, tenant_id="t1", channel="whatsapp", message_id="m1", to="+1", text="hola", send=send)

        assert ok is False
        db.query.return_value.filter.return_value.delete.assert_called_once()

    def test_without_message_id_sends_once_without_reservation(self):
        db = Mock()
        send = Mock(return_value=True)

        ok = safe_send(db, tenant_id="t1", channel="sms", message_id=None, to="+1", text="hola", send=send)

        assert ok is True
        send.assert_called_once()
        db.execute.assert_not_called()
