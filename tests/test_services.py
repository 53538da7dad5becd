"""Service tests against an in-memory SQLite database."""

import unittest

from app.core.errors import AuthenticationError, InvalidInputError, NotFoundError, StorageError
from app.core.security import PasswordHasher, TokenManager
from app.repositories import AccommodationRepository, UserRepository
from app.schemas.accommodation import AccommodationCreate, AccommodationFilters
from app.services.accommodation import AccommodationService
from app.services.auth import AuthService
from app.services.user import UserService

from support import TEST_JWT_SECRET, make_database


def _listing(**overrides: object) -> dict:
    data = {
        "title": "Seaside Loft",
        "description": "Bright loft two minutes from the beach.",
        "price": 120.5,
        "location": "Lisbon, Portugal",
        "image_url": "https://example.com/loft.jpg",
        "amenities": ["wifi", "kitchen"],
    }
    data.update(overrides)
    return data


class ServiceTestCase(unittest.TestCase):
    """Services wired to repositories over an in-memory database."""

    def setUp(self) -> None:
        self.database = make_database()
        self.users = UserRepository(self.database)
        self.accommodations = AccommodationRepository(self.database)
        self.hasher = PasswordHasher(cost=4)
        self.tokens = TokenManager(TEST_JWT_SECRET)
        self.auth = AuthService(self.tokens, self.hasher, self.users)
        self.accommodation_service = AccommodationService(self.accommodations)
        self.user_service = UserService(self.users, self.accommodations)

    def tearDown(self) -> None:
        self.database.dispose()


class TestAccommodationService(ServiceTestCase):
    """Validation, filters and partial updates for listings."""

    def test_create_then_get_returns_same_fields(self) -> None:
        created = self.accommodation_service.create(_listing())
        fetched = self.accommodation_service.get(created.id)
        self.assertEqual(fetched, created)
        self.assertEqual(fetched.amenities, ["wifi", "kitchen"])
        self.assertEqual(fetched.price, 120.5)

    def test_create_rejects_invalid_input(self) -> None:
        with self.assertRaises(InvalidInputError) as cm:
            self.accommodation_service.create(_listing(price=-1, title="ab"))
        self.assertIn("price - Price cannot be negative", cm.exception.message)
        self.assertIn("title - ", cm.exception.message)
        self.assertEqual(self.accommodation_service.count(), 0)

    def test_create_rejects_non_finite_price(self) -> None:
        for price in (float("nan"), float("inf")):
            with self.assertRaises(InvalidInputError) as cm:
                self.accommodation_service.create(_listing(price=price))
            self.assertIn("price - ", cm.exception.message)
        self.assertEqual(self.accommodation_service.count(), 0)

    def test_get_missing_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            self.accommodation_service.get(999)

    def test_filters_by_precedence(self) -> None:
        self.accommodation_service.create(_listing())
        self.accommodation_service.create(
            _listing(title="Mountain Cabin", location="Bariloche", price=80, amenities=["fireplace"])
        )

        by_search = self.accommodation_service.list_filtered(
            AccommodationFilters(search="cabin", location="Lisbon")
        )
        self.assertEqual([a.title for a in by_search], ["Mountain Cabin"])

        by_price = self.accommodation_service.list_filtered(
            AccommodationFilters(min_price=100, max_price=200)
        )
        self.assertEqual([a.title for a in by_price], ["Seaside Loft"])

        only_min = self.accommodation_service.list_filtered(AccommodationFilters(min_price=100))
        self.assertEqual(len(only_min), 2)

        by_amenity = self.accommodation_service.list_filtered(AccommodationFilters(amenity="fireplace"))
        self.assertEqual([a.title for a in by_amenity], ["Mountain Cabin"])

        page = self.accommodation_service.list_filtered(AccommodationFilters(limit=1, offset=1))
        self.assertEqual(len(page), 1)

    def test_search_term_rules(self) -> None:
        with self.assertRaises(InvalidInputError):
            self.accommodation_service.search("a")
        with self.assertRaises(InvalidInputError):
            self.accommodation_service.search("   ")

    def test_price_range_rules(self) -> None:
        with self.assertRaises(InvalidInputError):
            self.accommodation_service.by_price_range(200, 100)
        with self.assertRaises(InvalidInputError):
            self.accommodation_service.by_price_range(-1, 100)

    def test_pagination_rules(self) -> None:
        with self.assertRaises(InvalidInputError):
            self.accommodation_service.paginate(0)
        with self.assertRaises(InvalidInputError):
            self.accommodation_service.paginate(10, -1)

    def test_partial_update_and_amenities(self) -> None:
        created = self.accommodation_service.create(_listing())
        updated = self.accommodation_service.update(created.id, {"price": 99, "image_url": ""})
        self.assertEqual(updated.price, 99)
        self.assertIsNone(updated.image_url)
        self.assertEqual(updated.title, created.title)

        with_pool = self.accommodation_service.add_amenity(created.id, "pool")
        self.assertEqual(with_pool.amenities, ["wifi", "kitchen", "pool"])
        without_wifi = self.accommodation_service.remove_amenity(created.id, "wifi")
        self.assertEqual(without_wifi.amenities, ["kitchen", "pool"])

    def test_delete(self) -> None:
        created = self.accommodation_service.create(_listing())
        self.accommodation_service.delete(created.id)
        self.assertFalse(self.accommodation_service.exists(created.id))
        with self.assertRaises(NotFoundError):
            self.accommodation_service.delete(created.id)


class TestAuthService(ServiceTestCase):
    """Registration, login, refresh and password changes."""

    def test_register_and_login(self) -> None:
        registered = self.auth.register("alice", "alice@example.com", "Passw0rd!")
        self.assertEqual(registered.user.role, "user")
        self.assertEqual(registered.expires_in, 3600)

        logged_in = self.auth.login("alice@example.com", "Passw0rd!")
        identity = self.auth.validate_token(logged_in.token)
        self.assertEqual(identity.username, "alice")

    def test_duplicate_registration_keeps_one_row(self) -> None:
        self.auth.register("alice", "alice@example.com", "Passw0rd!")
        with self.assertRaises(InvalidInputError) as cm:
            self.auth.register("alice2", "alice@example.com", "Passw0rd!")
        self.assertIn("already exists", cm.exception.message)
        with self.assertRaises(InvalidInputError):
            self.auth.register("alice", "other@example.com", "Passw0rd!")
        self.assertEqual(len(self.users.find_all()), 1)

    def test_weak_password_rejected(self) -> None:
        with self.assertRaises(InvalidInputError) as cm:
            self.auth.register("bob", "bob@example.com", "password")
        self.assertIn("uppercase", cm.exception.message)
        self.assertIsNone(self.users.find_by_email("bob@example.com"))

    def test_login_failures_are_uniform(self) -> None:
        self.auth.register("alice", "alice@example.com", "Passw0rd!")
        for email, password in (("alice@example.com", "wrong"), ("nobody@example.com", "Passw0rd!")):
            with self.assertRaises(AuthenticationError) as cm:
                self.auth.login(email, password)
            self.assertEqual(cm.exception.code, "INVALID_CREDENTIALS")
            self.assertEqual(cm.exception.message, "Invalid credentials")

    def test_login_rehashes_outdated_cost(self) -> None:
        self.auth.register("alice", "alice@example.com", "Passw0rd!")
        self.hasher.set_cost(5)
        self.auth.login("alice@example.com", "Passw0rd!")
        stored = self.users.find_by_email("alice@example.com")
        self.assertFalse(self.hasher.needs_rehash(stored.password_hash))

    def test_refresh_and_role_check(self) -> None:
        result = self.auth.register("root", "root@example.com", "Passw0rd!", role="admin")
        refreshed = self.auth.refresh_token(result.token)
        self.assertEqual(refreshed.user.id, result.user.id)
        self.assertTrue(self.auth.user_has_role(result.token, "user"))
        self.assertIsNone(self.auth.refresh_token("garbage"))

    def test_get_user_by_token(self) -> None:
        result = self.auth.register("alice", "alice@example.com", "Passw0rd!")
        user = self.auth.get_user_by_token(result.token)
        self.assertEqual(user.id, result.user.id)
        self.assertEqual(user.username, "alice")
        self.assertIsNone(self.auth.get_user_by_token("garbage"))

    def test_find_by_username_or_email(self) -> None:
        result = self.auth.register("alice", "alice@example.com", "Passw0rd!")
        self.assertEqual(self.users.find_by_username_or_email("alice").id, result.user.id)
        self.assertEqual(
            self.users.find_by_username_or_email("alice@example.com").id, result.user.id
        )
        self.assertIsNone(self.users.find_by_username_or_email("bob"))

    def test_change_and_reset_password(self) -> None:
        result = self.auth.register("alice", "alice@example.com", "Passw0rd!")
        with self.assertRaises(InvalidInputError):
            self.auth.change_password(result.user.id, "wrong", "N3w!password")
        self.auth.change_password(result.user.id, "Passw0rd!", "N3w!password")
        self.auth.login("alice@example.com", "N3w!password")

        temporary = self.auth.reset_password(result.user.id)
        self.assertEqual(len(temporary), 12)
        self.auth.login("alice@example.com", temporary)


class TestUserService(ServiceTestCase):
    """Bookmarks and user management."""

    def setUp(self) -> None:
        super().setUp()
        self.alice = self.auth.register("alice", "alice@example.com", "Passw0rd!").user
        self.listing = self.accommodation_service.create(_listing())

    def test_bookmark_lifecycle(self) -> None:
        self.assertEqual(self.user_service.get_user_accommodations(self.alice.id), [])
        self.user_service.add_accommodation_to_user(self.alice.id, self.listing.id)
        saved = self.user_service.get_user_accommodations(self.alice.id)
        self.assertEqual([a.id for a in saved], [self.listing.id])
        self.user_service.remove_accommodation_from_user(self.alice.id, self.listing.id)
        self.assertEqual(self.user_service.get_user_accommodations(self.alice.id), [])

    def test_duplicate_bookmark_keeps_one_row(self) -> None:
        self.user_service.add_accommodation_to_user(self.alice.id, self.listing.id)
        with self.assertRaises(InvalidInputError) as cm:
            self.user_service.add_accommodation_to_user(self.alice.id, self.listing.id)
        self.assertEqual(cm.exception.message, "User already has this accommodation")
        self.assertEqual(len(self.user_service.get_user_accommodations(self.alice.id)), 1)

    def test_repository_reports_duplicate_pair(self) -> None:
        self.assertTrue(self.users.add_user_accommodation(self.alice.id, self.listing.id))
        self.assertFalse(self.users.add_user_accommodation(self.alice.id, self.listing.id))

    def test_repository_raises_for_missing_bookmark_target(self) -> None:
        with self.assertRaises(NotFoundError):
            self.users.add_user_accommodation(self.alice.id, 999)
        with self.assertRaises(NotFoundError):
            self.users.add_user_accommodation(999, self.listing.id)
        self.assertTrue(self.users.add_user_accommodation(self.alice.id, self.listing.id))
        self.assertFalse(self.users.add_user_accommodation(self.alice.id, self.listing.id))

    def test_user_has_accommodation(self) -> None:
        self.assertFalse(self.user_service.user_has_accommodation(self.alice.id, self.listing.id))
        self.user_service.add_accommodation_to_user(self.alice.id, self.listing.id)
        self.assertTrue(self.user_service.user_has_accommodation(self.alice.id, self.listing.id))
        with self.assertRaises(NotFoundError):
            self.user_service.user_has_accommodation(self.alice.id, 999)

    def test_accommodation_lists_users_who_saved_it(self) -> None:
        bob = self.auth.register("bob", "bob@example.com", "Passw0rd!").user
        self.assertEqual(self.accommodation_service.list_users(self.listing.id), [])
        self.user_service.add_accommodation_to_user(self.alice.id, self.listing.id)
        self.user_service.add_accommodation_to_user(bob.id, self.listing.id)
        saved_by = self.accommodation_service.list_users(self.listing.id)
        self.assertEqual(sorted(u.username for u in saved_by), ["alice", "bob"])
        with self.assertRaises(NotFoundError):
            self.accommodation_service.list_users(999)

    def test_deleting_user_removes_bookmarks(self) -> None:
        self.user_service.add_accommodation_to_user(self.alice.id, self.listing.id)
        self.user_service.delete_user(self.alice.id)
        remaining = self.database.execute(
            "SELECT COUNT(*) FROM user_accommodations WHERE user_id = :id", {"id": self.alice.id}
        ).scalar_one()
        self.assertEqual(remaining, 0)
        self.assertTrue(self.accommodation_service.exists(self.listing.id))
        with self.assertRaises(NotFoundError):
            self.user_service.delete_user(self.alice.id)

    def test_bookmark_targets_must_exist(self) -> None:
        with self.assertRaises(NotFoundError):
            self.user_service.add_accommodation_to_user(self.alice.id, 999)
        with self.assertRaises(NotFoundError):
            self.user_service.add_accommodation_to_user(999, self.listing.id)
        with self.assertRaises(NotFoundError) as cm:
            self.user_service.remove_accommodation_from_user(self.alice.id, self.listing.id)
        self.assertEqual(cm.exception.message, "User does not have this accommodation")

    def test_deleting_accommodation_removes_bookmarks(self) -> None:
        self.user_service.add_accommodation_to_user(self.alice.id, self.listing.id)
        self.accommodation_service.delete(self.listing.id)
        self.assertEqual(self.user_service.get_user_accommodations(self.alice.id), [])

    def test_update_user_uniqueness_excludes_self(self) -> None:
        self.auth.register("bob", "bob@example.com", "Passw0rd!")
        same = self.user_service.update_user(self.alice.id, {"username": "alice"})
        self.assertEqual(same.username, "alice")
        with self.assertRaises(InvalidInputError):
            self.user_service.update_user(self.alice.id, {"email": "bob@example.com"})

    def test_change_role(self) -> None:
        promoted = self.user_service.change_role(self.alice.id, "admin")
        self.assertTrue(promoted.is_admin)
        with self.assertRaises(InvalidInputError):
            self.user_service.change_role(self.alice.id, "owner")



class TestDatabase(ServiceTestCase):
    """Raw statements through the gateway."""

    def test_execute_returns_rows(self) -> None:
        self.accommodation_service.create(_listing())
        rows = self.database.execute(
            "SELECT title FROM accommodations WHERE price > :price", {"price": 100}
        ).all()
        self.assertEqual([r.title for r in rows], ["Seaside Loft"])

    def test_execute_failure_is_storage_error(self) -> None:
        with self.assertRaises(StorageError):
            self.database.execute("SELECT * FROM no_such_table")


if __name__ == "__main__":
    unittest.main()
