from shantea.models import NotificationType
from shantea.utils.notify import create_notification


def _seed(app, user_id, n=1):
    with app.app_context():
        for i in range(n):
            create_notification(user_id, NotificationType.ORDER_STATUS, f"t{i}", f"m{i}", {"i": i})


def test_user_sees_only_own_notifications(app, client, make_user, auth_header):
    me = make_user("me@shantea.vn")
    other = make_user("other@shantea.vn")
    _seed(app, me, 2)
    _seed(app, other, 1)
    _seed(app, None, 1)

    data = client.get("/api/notifications", headers=auth_header(me)).get_json()["data"]

    assert len(data) == 2
    assert {n["userId"] for n in data} == {me}
    assert data[0]["data"] == {"i": 1}


def test_admin_sees_admin_notifications(app, client, make_user, auth_header):
    admin = make_user("admin@shantea.vn", role="admin")
    _seed(app, None, 3)
    data = client.get("/api/notifications?limit=2", headers=auth_header(admin)).get_json()["data"]
    assert len(data) == 2
    assert all(n["userId"] is None for n in data)


def test_read_flow(app, client, make_user, auth_header):
    me = make_user()
    _seed(app, me, 3)
    h = auth_header(me)

    assert client.get("/api/notifications/unread-count", headers=h).get_json()["data"]["count"] == 3

    first = client.get("/api/notifications", headers=h).get_json()["data"][0]
    assert client.post(f"/api/notifications/{first['id']}/read", headers=h).status_code == 200
    assert client.get("/api/notifications/unread-count", headers=h).get_json()["data"]["count"] == 2

    unread = client.get("/api/notifications?isRead=false", headers=h).get_json()["data"]
    assert first["id"] not in {n["id"] for n in unread}

    assert client.post("/api/notifications/read-all", headers=h).get_json()["data"]["updated"] == 2
    assert client.get("/api/notifications/unread-count", headers=h).get_json()["data"]["count"] == 0


def test_cannot_mark_someone_elses_notification(app, client, make_user, auth_header):
    me = make_user("me@shantea.vn")
    other = make_user("other@shantea.vn")
    _seed(app, other, 1)
    with app.app_context():
        from shantea.models import Notification
        nid = Notification.query.first().id

    assert client.post(f"/api/notifications/{nid}/read", headers=auth_header(me)).status_code == 404


def test_create_notification_publishes(app, make_user, realtime):
    from shantea.realtime import QueueSink

    uid = make_user()
    sink = QueueSink()
    realtime.registry.register("c1", str(uid), sink)

    _seed(app, uid, 1)
    realtime.dispatcher.drain()

    assert sink.read(timeout=0.1)["data"]["title"] == "t0"


def test_list_filters_by_type(app, client, make_user, auth_header):
    me = make_user()
    _seed(app, me, 2)
    with app.app_context():
        create_notification(me, NotificationType.PAYMENT_RECEIVED, "paid", "paid", None)
    h = auth_header(me)

    data = client.get("/api/notifications?type=PAYMENT_RECEIVED", headers=h).get_json()["data"]
    assert [n["title"] for n in data] == ["paid"]

    assert client.get("/api/notifications?type=NOPE", headers=h).status_code == 400


def test_delete_older_than_keeps_recent_rows(app, make_user):
    from datetime import datetime, timedelta

    from shantea.extensions import db
    from shantea.models import Notification
    from shantea.utils.notify import delete_older_than

    uid = make_user()
    _seed(app, uid, 3)
    with app.app_context():
        rows = Notification.query.order_by(Notification.id).all()
        rows[0].created_at = datetime.utcnow() - timedelta(days=31)
        rows[1].created_at = datetime.utcnow() - timedelta(days=45)
        db.session.commit()

        assert delete_older_than(30) == 2
        assert [n.title for n in Notification.query.all()] == ["t2"]


def test_cleanup_job_uses_configured_retention(app, make_user):
    from datetime import datetime, timedelta

    from shantea.extensions import db
    from shantea.jobs.notification_cleanup import run_notification_cleanup
    from shantea.models import Notification

    uid = make_user()
    _seed(app, uid, 2)
    app.config["NOTIFICATION_RETENTION_DAYS"] = 7
    with app.app_context():
        Notification.query.order_by(Notification.id).first().created_at = datetime.utcnow() - timedelta(days=8)
        db.session.commit()

    assert run_notification_cleanup(app) == 1
    with app.app_context():
        assert Notification.query.count() == 1


def test_scheduler_registers_enabled_jobs(app):
    from shantea.jobs.scheduler import BANK_SYNC_JOB_ID, NOTIFICATION_CLEANUP_JOB_ID, start_scheduler

    app.config.update(BANK_SYNC_INTERVAL_MINUTES=0, NOTIFICATION_RETENTION_DAYS=0)
    assert start_scheduler(app) is None

    app.config.update(BANK_SYNC_INTERVAL_MINUTES=5, NOTIFICATION_RETENTION_DAYS=30, NOTIFICATION_CLEANUP_INTERVAL_HOURS=24)
    scheduler = start_scheduler(app)
    try:
        assert {j.id for j in scheduler.get_jobs()} == {BANK_SYNC_JOB_ID, NOTIFICATION_CLEANUP_JOB_ID}
    finally:
        scheduler.shutdown(wait=False)
