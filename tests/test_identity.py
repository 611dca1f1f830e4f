from field_rate_limit.services.identity import Identity, get_field_identity, get_path


def test_field_identity_without_identity_args_is_field_name() -> None:
    assert get_field_identity("myField", [], {}) == "myField"
    assert get_field_identity("random", [], {}) == "random"


def test_field_identity_with_identity_args() -> None:
    assert get_field_identity("myField", ["id"], {"id": 2, "name": "Foo"}) == "myField:2"
    assert get_field_identity("myField", ["name", "id"], {"id": 2, "name": "Foo"}) == "myField:Foo:2"
    assert get_field_identity("myField", ["name", "bool"], {"bool": True, "name": "Foo"}) == "myField:Foo:true"


def test_field_identity_missing_and_null_values_are_empty_segments() -> None:
    assert get_field_identity("myField", ["name", "bool"], {}) == "myField::"
    assert get_field_identity("myField", ["name", "bool"], {"name": None}) == "myField::"


def test_field_identity_keeps_false_distinct_from_null() -> None:
    assert get_field_identity("myField", ["flag"], {"flag": False}) == "myField:false"
    assert get_field_identity("myField", ["flag"], {"flag": None}) == "myField:"


def test_field_identity_with_nested_identity_args() -> None:
    assert get_field_identity("myField", ["item.id"], {"item": {"id": 2}, "name": "Foo"}) == "myField:2"
    assert get_field_identity("myField", ["item.foo"], {"item": {"id": 2}, "name": "Foo"}) == "myField:"

    obj = {"item": {"subItem": {"id": 9}}, "name": "Foo"}
    assert get_field_identity("myField", ["item.subItem.id"], obj) == "myField:9"

    obj_two = {"item": {"subItem": {"id": 1}}, "name": "Foo"}
    assert get_field_identity("myField", ["name", "item.subItem.id"], obj_two) == "myField:Foo:1"


def test_field_identity_is_deterministic() -> None:
    args = {"a": {"b": [1, 2]}, "c": 1.0}
    first = get_field_identity("f", ["a.b", "c"], args)
    assert first == get_field_identity("f", ["a.b", "c"], dict(args))
    assert first == "f:1,2:1"


def test_field_identity_string_projection_collides() -> None:
    # Values are keyed by their text form
    assert get_field_identity("f", ["id"], {"id": 2}) == get_field_identity("f", ["id"], {"id": "2"})


def test_get_path_walks_sequences_and_attributes() -> None:
    class Item:
        def __init__(self) -> None:
            self.ids = [7, 9]

    assert get_path({"item": Item()}, "item.ids.1") == 9
    assert get_path({"item": Item()}, "item.ids.5") is None
    assert get_path({"item": Item()}, "item.ids.x") is None
    assert get_path({"item": None}, "item.id", default="?") == "?"
    assert get_path("text", "length") is None


def test_identity_is_an_immutable_value() -> None:
    assert Identity("1", "myField") == Identity(context_identity="1", field_identity="myField")
    assert hash(Identity("1", "myField")) == hash(Identity("1", "myField"))
