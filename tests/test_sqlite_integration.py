"""End-to-end behaviour against an in-memory sqlite database."""

from sample_models import Phone, Post, Role, User


def seed_users():
    return [
        User.store({"name": "Ana", "age": 31}),
        User.store({"name": "Bo", "age": 17}),
        User.store({"name": "Cy", "age": 45}),
    ]


class TestRoundTrip:

    def test_store_then_find(self, sqlite_db):
        new_id = User.store({"a": 1, "b": 2})
        user = User.find(new_id)
        assert user.get_attribute("a") == 1
        assert user.get_attribute("b") == 2
        assert user.id == new_id

    def test_filters(self, sqlite_db):
        seed_users()
        adults = User.where("age", ">", 18).order_by("name").get()
        assert [row["name"] for row in adults] == ["Ana", "Cy"]

        rows = User.where("name", "Ana").or_("age", "<", 18).order_by("id").get("name")
        assert [row["name"] for row in rows] == ["Ana", "Bo"]

    def test_count_and_exists(self, sqlite_db):
        seed_users()
        assert User.count() == 3
        assert User.count("age", "<", 40) == 2
        assert User.exists("name", "Cy")
        assert not User.exists("name", "Dee")

    def test_pagination(self, sqlite_db):
        ids = seed_users()
        rows = User.where("age", ">", 0).order_by("id").skip(1).take(1).get()
        assert [row["id"] for row in rows] == [ids[1]]

    def test_update_with(self, sqlite_db):
        ana, _, _ = seed_users()
        assert User.where("name", "Ana").update("age").with_(32) == 1
        assert User.find(ana).get_attribute("age") == 32

    def test_unscoped_set_changes_nothing(self, sqlite_db):
        ana, bo, _ = seed_users()
        assert User().set("name", "X") == 0
        assert User().update("age").with_(99) == 0
        assert User.find(ana).get_attribute("name") == "Ana"
        assert User.find(bo).get_attribute("age") == 17

    def test_save_fetched_row(self, sqlite_db):
        ana, bo, _ = seed_users()
        user = User.find(ana)
        user.set_attribute("name", "Anna")
        assert user.save() == 1
        assert User.find(ana).get_attribute("name") == "Anna"
        assert User.find(bo).get_attribute("name") == "Bo"

    def test_destroy(self, sqlite_db):
        seed_users()
        assert User.where("age", "<", 18).destroy() == 1
        assert User.count() == 2

    def test_first(self, sqlite_db):
        seed_users()
        assert User.where("age", ">", 30).order_by("age desc").first().get_attribute("name") == "Cy"


class TestRelationshipsEndToEnd:

    def test_navigation(self, sqlite_db):
        ana, bo, _ = seed_users()
        Post.store({"user_id": ana, "title": "First"})
        Post.store({"user_id": ana, "title": "Second"})
        Phone.store({"user_id": ana, "number": "555"})
        admin = Role.store({"name": "admin"})
        Role.store({"name": "guest"})
        sqlite_db.conn.execute("INSERT INTO roles_users (user_id, role_id) VALUES (?, ?)", (ana, admin))

        user = User.find(ana)
        assert [row["title"] for row in user.get_attribute("posts")] == ["First", "Second"]
        assert user.get_attribute("phone").get_attribute("number") == "555"
        assert [row["name"] for row in user.get_attribute("roles")] == ["admin"]

        post = Post.find("title", "Second")
        assert post.get_attribute("author").id == ana

        assert User.find(bo).get_attribute("phone") is None
