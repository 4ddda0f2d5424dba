from ouroboros_spec.views import from_json_view, to_json_view


class TestToJsonView:
    def test_renames_ref_and_strips_prefix(self):
        document = {
            "x-ouroboros-id": "abc",
            "x-ouroboros-diff": "none",
            "x-ouroboros-entrypoint": "/ws",
            "channel": {"$ref": "#/channels/_chat"},
        }
        assert to_json_view(document) == {
            "id": "abc",
            "diff": "none",
            "entrypoint": "/ws",
            "channel": {"ref": "#/channels/_chat"},
        }

    def test_lists_are_converted(self):
        assert to_json_view({"messages": [{"$ref": "#/a"}]}) == {"messages": [{"ref": "#/a"}]}

    def test_scalars_untouched(self):
        assert to_json_view("text") == "text"


class TestFromJsonView:
    def test_restores_prefix_and_ref(self):
        view = {"id": "abc", "progress": "mock", "payload": {"ref": "#/components/schemas/User"}}
        assert from_json_view(view) == {
            "x-ouroboros-id": "abc",
            "x-ouroboros-progress": "mock",
            "payload": {"$ref": "#/components/schemas/User"},
        }

    def test_bare_ref_name_expands(self):
        assert from_json_view({"ref": "User"}) == {"$ref": "#/components/schemas/User"}

    def test_property_names_are_not_prefixed(self):
        schema = {"type": "object", "properties": {"id": {"type": "integer"}, "tag": {"type": "string"}}}
        assert from_json_view(schema) == schema

    def test_round_trip(self):
        document = {
            "action": "receive",
            "x-ouroboros-id": "abc",
            "messages": [{"$ref": "#/channels/_chat/messages/Chat"}],
            "x-ouroboros-tag": "none",
        }
        assert from_json_view(to_json_view(document)) == document
