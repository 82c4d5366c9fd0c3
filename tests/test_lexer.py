from motion_dsl import Lexer, Token, tokenize


def kinds(source):
    return [t.type for t in tokenize(source)]


def test_scene_statement_tokens():
    tokens = tokenize('scene 800 600 "demo"')
    assert [(t.type, t.value) for t in tokens] == [
        ("SCENE", "scene"),
        ("NUMBER", "800"),
        ("NUMBER", "600"),
        ("STRING", "demo"),
        ("EOF", ""),
    ]


def test_positions_are_one_based():
    tokens = tokenize("create circle c1 50\n  set c1.color = red")
    set_token = tokens[5]
    assert set_token.type == "SET"
    assert (set_token.line, set_token.column) == (2, 3)
    assert (tokens[0].line, tokens[0].column) == (1, 1)


def test_comments_are_skipped():
    assert kinds("// heading\nrender # trailing note\n") == ["NEWLINE", "RENDER", "NEWLINE", "EOF"]


def test_hash_followed_by_hex_digit_is_a_color():
    tokens = tokenize("#FF0000 #abc #zz not a color")
    assert [(t.type, t.value) for t in tokens[:2]] == [("COLOR", "#FF0000"), ("COLOR", "#abc")]
    assert tokens[2].type == "EOF"


def test_strings_have_no_escape_sequences():
    tokens = tokenize(r'"a\"b"')
    assert (tokens[0].type, tokens[0].value) == ("STRING", "a\\")
    assert (tokens[1].type, tokens[1].value) == ("IDENT", "b")
    # The last quote opens a new, unterminated string
    assert (tokens[2].type, tokens[2].value) == ("STRING", "")


def test_string_spanning_lines_advances_line_count():
    tokens = tokenize('"a\nb" render')
    assert tokens[0].value == "a\nb"
    assert tokens[1].type == "RENDER"
    assert (tokens[1].line, tokens[1].column) == (2, 4)


def test_unterminated_string_runs_to_end_of_input():
    tokens = tokenize('save "frame one')
    assert (tokens[1].type, tokens[1].value) == ("STRING", "frame one")
    assert tokens[2].type == "EOF"


def test_number_forms():
    tokens = tokenize("3 3.5 3. .5")
    assert [(t.type, t.value) for t in tokens[:-1]] == [
        ("NUMBER", "3"),
        ("NUMBER", "3.5"),
        ("NUMBER", "3."),
        ("DOT", "."),
        ("NUMBER", "5"),
    ]


def test_keywords_map_to_upper_case_types():
    for word in ["scene", "vertex1", "fadein", "color", "triangle", "clean"]:
        assert tokenize(word)[0].type == word.upper()
    assert tokenize("scenes")[0].type == "IDENT"
    assert tokenize("Scene")[0].type == "IDENT"


def test_punctuation():
    assert kinds("= + - * / , ( ) { } [ ] . : ;")[:-1] == [
        "ASSIGN", "PLUS", "MINUS", "MULTIPLY", "DIVIDE", "COMMA", "LPAREN", "RPAREN",
        "LBRACE", "RBRACE", "LBRACKET", "RBRACKET", "DOT", "COLON", "SEMICOLON",
    ]


def test_illegal_character_becomes_a_token():
    token = tokenize("render @")[1]
    assert (token.type, token.value, token.column) == ("ILLEGAL", "@", 8)


def test_next_token_keeps_returning_eof():
    lexer = Lexer("render")
    assert lexer.next_token().type == "RENDER"
    assert lexer.next_token().type == "EOF"
    assert lexer.next_token().type == "EOF"


def test_token_repr():
    assert repr(Token("IDENT", "c1", 0, 2, 5)) == "IDENT:c1@2:5"
