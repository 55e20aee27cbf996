import pytest
from datetime import timezone

from ryob import content
from ryob.errors import NoSuchTopic, StorageFailure
from ryob.ids import TopicId, UserId


@pytest.fixture
def hello(conn, ada):
    return content.create_topic(conn, ada.id, "Hello")


def test_create_topic(conn, ada):
    topic = content.create_topic(conn, ada.id, "Hello")

    found = content.find_topic(conn, topic.id)
    assert found.title == "Hello"
    assert found.created_by == ada.id
    assert found.created_at.tzinfo is not None
    assert found.created_at.astimezone(timezone.utc) == topic.created_at


def test_find_missing_topic(conn):
    with pytest.raises(NoSuchTopic) as excinfo:
        content.find_topic(conn, TopicId(42))
    assert excinfo.value.status_code == 404


def test_list_topics_newest_first(conn, ada, grace):
    for i in range(5):
        creator = ada if i % 2 else grace
        content.create_topic(conn, creator.id, f"Topic {i}")

    listed = content.list_topics(conn, 0, 10)

    assert [t.title for t, _ in listed] == [f"Topic {i}" for i in reversed(range(5))]
    stamps = [t.created_at for t, _ in listed]
    assert stamps == sorted(stamps, reverse=True)
    assert [u.user_name for _, u in listed][:2] == ["Grace", "Ada"]


@pytest.mark.parametrize("offset,limit", [(0, 2), (2, 2), (4, 10), (7, 3), (0, 0)])
def test_list_topics_window_matches_sql_slice(conn, ada, offset, limit):
    for i in range(7):
        content.create_topic(conn, ada.id, f"Topic {i}")
    everything = [t.id for t, _ in content.list_topics(conn, 0, 100)]

    window = [t.id for t, _ in content.list_topics(conn, offset, limit)]

    assert window == everything[offset:offset + limit]


def test_negative_window_is_rejected(conn, hello):
    with pytest.raises(ValueError):
        content.list_topics(conn, -1, 10)
    with pytest.raises(ValueError):
        content.list_posts_in_topic(conn, hello.id, 0, -5)


def test_count_topics(conn, ada):
    assert content.count_topics(conn) == 0
    content.create_topic(conn, ada.id, "One")
    content.create_topic(conn, ada.id, "Two")
    assert content.count_topics(conn) == 2


def test_later_post_is_listed_first(conn, ada, hello):
    """Two posts by Ada in "Hello" come back with the later one first"""
    first = content.create_post(conn, ada.id, hello.id, "first!")
    second = content.create_post(conn, ada.id, hello.id, "second")

    listed = content.list_posts_in_topic(conn, hello.id, 0, 10)

    assert [p.id for p, _ in listed] == [second.id, first.id]
    assert listed[0][0].created_at >= listed[1][0].created_at
    assert all(u.id == ada.id for _, u in listed)


def test_posts_are_scoped_to_their_topic(conn, ada, grace, hello):
    other = content.create_topic(conn, grace.id, "Other")
    content.create_post(conn, ada.id, hello.id, "in hello")
    content.create_post(conn, grace.id, other.id, "in other")

    listed = content.list_posts_in_topic(conn, hello.id, 0, 10)

    assert [p.content for p, _ in listed] == ["in hello"]
    assert content.count_posts_in_topic(conn, hello.id) == 1
    assert content.count_posts_in_topic(conn, other.id) == 1


def test_list_posts_window(conn, ada, hello):
    created = [content.create_post(conn, ada.id, hello.id, f"post {i}") for i in range(5)]
    newest_first = [p.id for p in reversed(created)]

    window = [p.id for p, _ in content.list_posts_in_topic(conn, hello.id, 1, 2)]

    assert window == newest_first[1:3]


def test_post_in_missing_topic_is_storage_failure(conn, ada):
    with pytest.raises(StorageFailure) as excinfo:
        content.create_post(conn, ada.id, TopicId(999), "into the void")

    assert excinfo.value.status_code == 500
    assert content.count_posts_in_topic(conn, TopicId(999)) == 0


def test_topic_by_missing_user_is_storage_failure(conn):
    with pytest.raises(StorageFailure):
        content.create_topic(conn, UserId(999), "Ghost topic")
    assert content.count_topics(conn) == 0


def test_window_beyond_64_bits_is_rejected(conn, hello):
    with pytest.raises(ValueError):
        content.list_topics(conn, 2 ** 64, 10)
    with pytest.raises(ValueError):
        content.list_posts_in_topic(conn, hello.id, 0, 2 ** 63)


@pytest.mark.parametrize("read", [
    lambda conn: content.find_topic(conn, TopicId(1)),
    lambda conn: content.list_topics(conn, 0, 10),
    lambda conn: content.count_topics(conn),
    lambda conn: content.list_posts_in_topic(conn, TopicId(1), 0, 10),
    lambda conn: content.count_posts_in_topic(conn, TopicId(1)),
])
def test_failed_read_rolls_back(failing_conn, read):
    with pytest.raises(StorageFailure):
        read(failing_conn)

    assert failing_conn.rolled_back
