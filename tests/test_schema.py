"""
Tests for model and field name resolution.
"""

from triplit_auth.adapter.schema import DefaultSchemaResolver, SchemaResolver


class TestDefaultSchemaResolver:
    """Tests for DefaultSchemaResolver."""

    def test_plural_model_names(self):
        resolver = DefaultSchemaResolver()
        assert resolver.get_model_name("user") == "users"
        assert resolver.get_model_name("session") == "sessions"

    def test_plural_name_is_not_pluralized_twice(self):
        resolver = DefaultSchemaResolver()
        assert resolver.get_model_name("users") == "users"

    def test_singular_model_names(self):
        resolver = DefaultSchemaResolver(use_plural=False)
        assert resolver.get_model_name("user") == "user"
        assert resolver.get_default_model_name("session") == "session"

    def test_default_model_name_from_collection(self):
        resolver = DefaultSchemaResolver()
        assert resolver.get_default_model_name("sessions") == "session"
        assert resolver.get_default_model_name("session") == "session"

    def test_model_name_overrides(self):
        resolver = DefaultSchemaResolver(model_names={"session": "auth_sessions"})
        assert resolver.get_model_name("session") == "auth_sessions"
        assert resolver.get_default_model_name("auth_sessions") == "session"
        assert resolver.get_model_name("auth_sessions") == "auth_sessions"

    def test_field_name_overrides(self):
        resolver = DefaultSchemaResolver(field_names={"session": {"userId": "user_id"}})
        assert resolver.get_field_name("session", "userId") == "user_id"
        assert resolver.get_field_name("sessions", "userId") == "user_id"
        assert resolver.get_field_name("session", "token") == "token"
        assert resolver.get_field_name("user", "userId") == "userId"

    def test_satisfies_protocol(self):
        assert isinstance(DefaultSchemaResolver(), SchemaResolver)
