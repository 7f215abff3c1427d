import pytest

from admin_api.core import validate_product, validate_product_ref
from admin_api.errors import ValidationFailed
from conftest import make_product


def kind_of(payload):
    with pytest.raises(ValidationFailed) as exc:
        validate_product(payload)
    return exc.value.kind


def test_valid_product_passes():
    product = validate_product(make_product("1", specs={"larghezza": "20cm"}))
    assert product.id == "1"
    assert product.to_document()["categories"] == ["bimbo"]
    assert "relatedProducts" not in product.to_document()


def test_name_boundary():
    assert kind_of(make_product(name="ab")) == "InvalidName"
    assert kind_of(make_product(name="  ab  ")) == "InvalidName"
    assert validate_product(make_product(name="abc")).name == "abc"


def test_price_boundary():
    assert kind_of(make_product(price="18.0")) == "InvalidPrice"
    assert kind_of(make_product(price="18")) == "InvalidPrice"
    assert kind_of(make_product(price="18.00\n")) == "InvalidPrice"
    assert kind_of(make_product(price=18.00)) == "InvalidPrice"
    assert validate_product(make_product(price="18.00")).price == "18.00"


def test_description_boundary():
    assert kind_of(make_product(description="123456789")) == "InvalidDescription"
    assert validate_product(make_product(description="1234567890")).description == "1234567890"


def test_categories():
    assert kind_of(make_product(categories=[])) == "InvalidCategory"
    assert kind_of(make_product(categories=["bimbo", "giocattoli"])) == "InvalidCategory"
    assert kind_of(make_product(categories=["Bimbo"])) == "InvalidCategory"


def test_invalid_category_message_lists_vocabulary():
    with pytest.raises(ValidationFailed) as exc:
        validate_product(make_product(categories=["bimbo", "giocattoli"]))
    assert exc.value.message.startswith("Invalid category: giocattoli. Valid: asilo, bimbo")


def test_images():
    assert kind_of(make_product(images=[])) == "InvalidImages"
    assert kind_of(make_product(images=["https://x/1.jpg", " "])) == "InvalidImages"
    assert kind_of(make_product(images=[3])) == "InvalidImages"


def test_featured_must_be_boolean():
    assert kind_of(make_product(featured="true")) == "InvalidFeatured"
    assert kind_of(make_product(featured=1)) == "InvalidFeatured"


def test_id_rules():
    assert kind_of(make_product(id="")) == "InvalidId"
    assert kind_of(make_product(id=7)) == "InvalidId"
    payload = make_product()
    del payload["id"]
    assert kind_of(payload) == "InvalidId"


def test_reports_only_the_first_failing_field():
    payload = make_product(name="x", price="bad", categories=[], featured="no")
    with pytest.raises(ValidationFailed) as exc:
        validate_product(payload)
    assert exc.value.kind == "InvalidName"
    assert exc.value.status_code == 400


def test_optional_fields():
    assert kind_of(make_product(specs={"altezza": None})) == "InvalidSpecs"
    assert kind_of(make_product(relatedProducts="2")) == "InvalidRelatedProducts"
    doc = validate_product(make_product(relatedProducts=["2", "3"])).to_document()
    assert doc["relatedProducts"] == ["2", "3"]


def test_product_ref():
    assert validate_product_ref({"id": "5"}) == "5"
    with pytest.raises(ValidationFailed):
        validate_product_ref({"id": ""})
    with pytest.raises(ValidationFailed):
        validate_product_ref({"id": None})
