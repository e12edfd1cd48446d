from flashdrill.catalog import CardCatalog


def test_builtin_words():
    catalog = CardCatalog()
    assert catalog.languages() == ["fr", "pt"]
    assert len(catalog.list_cards("pt")) == 25
    assert catalog.get_card("2").translation == "thank you"
    assert catalog.get_card("fr-2").term == "merci"
    assert catalog.get_card("missing") is None
    assert catalog.list_cards("de") == []


def test_load_csv_with_legacy_columns(tmp_path):
    path = tmp_path / "words.csv"
    path.write_text(
        "id,pt,en,language\n"
        "a,gato,cat,pt\n"
        "b,cão,,pt\n"
        "a,duplicate,dup,pt\n"
        ",orphan,x,pt\n"
        "c,chat,cat,fr\n",
        encoding="utf-8",
    )
    catalog = CardCatalog(str(path))
    assert catalog.load_data()
    assert [card.id for card in catalog.list_cards("pt")] == ["a", "b"]
    assert catalog.get_card("b").translation is None
    assert catalog.get_card("c").term == "chat"
    assert catalog.get_card("1") is None


def test_missing_csv_keeps_builtin(tmp_path):
    catalog = CardCatalog(str(tmp_path / "nope.csv"))
    assert not catalog.load_data()
    assert len(catalog.list_cards("pt")) == 25


def test_csv_without_language_column_uses_default(tmp_path):
    path = tmp_path / "words.csv"
    path.write_text("id,term,translation\nx,maison,house\n", encoding="utf-8")
    catalog = CardCatalog(str(path), default_language="fr")
    assert catalog.load_data()
    assert [card.term for card in catalog.list_cards("fr")] == ["maison"]
