"""Tests for glyphmeter.catalog."""

# Standard Library
import json

# Third Party
import pytest

# Local
import conftest  # noqa: F401
from glyphmeter.catalog import load_catalog, parse_catalog
from glyphmeter.errors import CatalogValidationError


#============================================
def test_parse_keeps_order_and_fields():
	catalog = parse_catalog(
		{
			"open-sans": {
				"importUrl": "https://fonts.googleapis.com/css2?family=Open+Sans&display=swap",
				"cssFamily": "'Open Sans', sans-serif",
				"category": "sans-serif",
			},
			"lora": {
				"importUrl": "https://fonts.googleapis.com/css2?family=Lora&display=swap",
				"cssFamily": "'Lora', serif",
				"displayName": "Lora Regular",
			},
		}
	)
	assert list(catalog) == ["open-sans", "lora"]
	open_sans = catalog["open-sans"]
	assert open_sans.display_name == "Open Sans"
	assert open_sans.family_name == "Open Sans"
	assert open_sans.fields["category"] == "sans-serif"
	assert catalog["lora"].display_name == "Lora Regular"


#============================================
def test_alias_field_names_accepted():
	catalog = parse_catalog(
		{"inter": {"importResource": "https://x/inter.css", "styleDeclaration": "Inter"}}
	)
	assert catalog["inter"].import_resource == "https://x/inter.css"
	assert catalog["inter"].style_declaration == "Inter"


#============================================
@pytest.mark.parametrize(
	"entry",
	[
		{"cssFamily": "'Lato', sans-serif"},
		{"importUrl": "https://x/lato.css"},
		{"importUrl": "", "cssFamily": "'Lato', sans-serif"},
		"not an object",
	],
)
def test_incomplete_entry_rejects_whole_catalog(entry):
	data = {
		"roboto": {"importUrl": "https://x/roboto.css", "cssFamily": "'Roboto'"},
		"lato": entry,
	}
	with pytest.raises(CatalogValidationError):
		parse_catalog(data)


#============================================
def test_root_must_be_object():
	with pytest.raises(CatalogValidationError):
		parse_catalog(["roboto"])


#============================================
def test_load_missing_and_malformed_files(tmp_path):
	with pytest.raises(CatalogValidationError):
		load_catalog(tmp_path / "missing.json")
	broken = tmp_path / "fonts.json"
	broken.write_text("{not json", encoding="utf-8")
	with pytest.raises(CatalogValidationError):
		load_catalog(broken)


#============================================
def test_load_valid_file(tmp_path):
	path = tmp_path / "fonts.json"
	path.write_text(
		json.dumps({"lato": {"importUrl": "https://x/lato.css", "cssFamily": "'Lato', sans-serif"}}),
		encoding="utf-8",
	)
	catalog = load_catalog(path)
	assert catalog["lato"].key == "lato"
