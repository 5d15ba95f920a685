"""Static kana catalogs grouped by script and practice subset."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Tuple

from .errors import ConfigurationError


@dataclass(frozen=True)
class KanaItem:
    kana: str
    romaji: str

    @property
    def item_id(self) -> str:
        return self.kana


class KanaType(str, enum.Enum):
    HIRAGANA = "hiragana"
    KATAKANA = "katakana"


class PracticeMode(str, enum.Enum):
    MAIN = "main"
    DAKUTEN = "dakuten"
    COMBINATION = "combination"
    ALL = "all"


def _items(*pairs: Tuple[str, str]) -> Tuple[KanaItem, ...]:
    return tuple(KanaItem(kana, romaji) for kana, romaji in pairs)


# ── Hiragana ──────────────────────────────────────────────────────────
MAIN_HIRAGANA = _items(
    ("あ", "a"), ("い", "i"), ("う", "u"), ("え", "e"), ("お", "o"),
    ("か", "ka"), ("き", "ki"), ("く", "ku"), ("け", "ke"), ("こ", "ko"),
    ("さ", "sa"), ("し", "shi"), ("す", "su"), ("せ", "se"), ("そ", "so"),
    ("た", "ta"), ("ち", "chi"), ("つ", "tsu"), ("て", "te"), ("と", "to"),
    ("な", "na"), ("に", "ni"), ("ぬ", "nu"), ("ね", "ne"), ("の", "no"),
    ("は", "ha"), ("ひ", "hi"), ("ふ", "fu"), ("へ", "he"), ("ほ", "ho"),
    ("ま", "ma"), ("み", "mi"), ("む", "mu"), ("め", "me"), ("も", "mo"),
    ("や", "ya"), ("ゆ", "yu"), ("よ", "yo"),
    ("ら", "ra"), ("り", "ri"), ("る", "ru"), ("れ", "re"), ("ろ", "ro"),
    ("わ", "wa"), ("を", "wo"), ("ん", "n"),
)

DAKUTEN_HIRAGANA = _items(
    ("が", "ga"), ("ぎ", "gi"), ("ぐ", "gu"), ("げ", "ge"), ("ご", "go"),
    ("ざ", "za"), ("じ", "ji"), ("ず", "zu"), ("ぜ", "ze"), ("ぞ", "zo"),
    ("だ", "da"), ("ぢ", "di"), ("づ", "du"), ("で", "de"), ("ど", "do"),
    ("ば", "ba"), ("び", "bi"), ("ぶ", "bu"), ("べ", "be"), ("ぼ", "bo"),
    ("ぱ", "pa"), ("ぴ", "pi"), ("ぷ", "pu"), ("ぺ", "pe"), ("ぽ", "po"),
)

COMBINATION_HIRAGANA = _items(
    ("きゃ", "kya"), ("きゅ", "kyu"), ("きょ", "kyo"),
    ("しゃ", "sha"), ("しゅ", "shu"), ("しょ", "sho"),
    ("ちゃ", "cha"), ("ちゅ", "chu"), ("ちょ", "cho"),
    ("にゃ", "nya"), ("にゅ", "nyu"), ("にょ", "nyo"),
    ("ひゃ", "hya"), ("ひゅ", "hyu"), ("ひょ", "hyo"),
    ("みゃ", "mya"), ("みゅ", "myu"), ("みょ", "myo"),
    ("りゃ", "rya"), ("りゅ", "ryu"), ("りょ", "ryo"),
    ("ぎゃ", "gya"), ("ぎゅ", "gyu"), ("ぎょ", "gyo"),
    ("じゃ", "ja"), ("じゅ", "ju"), ("じょ", "jo"),
    ("びゃ", "bya"), ("びゅ", "byu"), ("びょ", "byo"),
    ("ぴゃ", "pya"), ("ぴゅ", "pyu"), ("ぴょ", "pyo"),
)

# ── Katakana ──────────────────────────────────────────────────────────
MAIN_KATAKANA = _items(
    ("ア", "a"), ("イ", "i"), ("ウ", "u"), ("エ", "e"), ("オ", "o"),
    ("カ", "ka"), ("キ", "ki"), ("ク", "ku"), ("ケ", "ke"), ("コ", "ko"),
    ("サ", "sa"), ("シ", "shi"), ("ス", "su"), ("セ", "se"), ("ソ", "so"),
    ("タ", "ta"), ("チ", "chi"), ("ツ", "tsu"), ("テ", "te"), ("ト", "to"),
    ("ナ", "na"), ("ニ", "ni"), ("ヌ", "nu"), ("ネ", "ne"), ("ノ", "no"),
    ("ハ", "ha"), ("ヒ", "hi"), ("フ", "fu"), ("ヘ", "he"), ("ホ", "ho"),
    ("マ", "ma"), ("ミ", "mi"), ("ム", "mu"), ("メ", "me"), ("モ", "mo"),
    ("ヤ", "ya"), ("ユ", "yu"), ("ヨ", "yo"),
    ("ラ", "ra"), ("リ", "ri"), ("ル", "ru"), ("レ", "re"), ("ロ", "ro"),
    ("ワ", "wa"), ("ヲ", "wo"), ("ン", "n"),
)

DAKUTEN_KATAKANA = _items(
    ("ガ", "ga"), ("ギ", "gi"), ("グ", "gu"), ("ゲ", "ge"), ("ゴ", "go"),
    ("ザ", "za"), ("ジ", "ji"), ("ズ", "zu"), ("ゼ", "ze"), ("ゾ", "zo"),
    ("ダ", "da"), ("ヂ", "ji"), ("ヅ", "zu"), ("デ", "de"), ("ド", "do"),
    ("バ", "ba"), ("ビ", "bi"), ("ブ", "bu"), ("ベ", "be"), ("ボ", "bo"),
    ("パ", "pa"), ("ピ", "pi"), ("プ", "pu"), ("ペ", "pe"), ("ポ", "po"),
    ("ヴ", "vu"),
)

COMBINATION_KATAKANA = _items(
    ("キャ", "kya"), ("キュ", "kyu"), ("キョ", "kyo"),
    ("シャ", "sha"), ("シュ", "shu"), ("ショ", "sho"),
    ("チャ", "cha"), ("チュ", "chu"), ("チョ", "cho"),
    ("ニャ", "nya"), ("ニュ", "nyu"), ("ニョ", "nyo"),
    ("ヒャ", "hya"), ("ヒュ", "hyu"), ("ヒョ", "hyo"),
    ("ミャ", "mya"), ("ミュ", "myu"), ("ミョ", "myo"),
    ("リャ", "rya"), ("リュ", "ryu"), ("リョ", "ryo"),
    ("ギャ", "gya"), ("ギュ", "gyu"), ("ギョ", "gyo"),
    ("ジャ", "ja"), ("ジュ", "ju"), ("ジョ", "jo"),
    ("ヂャ", "dya"), ("ヂュ", "dyu"), ("ヂョ", "dyo"),
    ("ビャ", "bya"), ("ビュ", "byu"), ("ビョ", "byo"),
    ("ピャ", "pya"), ("ピュ", "pyu"), ("ピョ", "pyo"),
    # Foreign sounds
    ("ヴァ", "va"), ("ヴィ", "vi"), ("ヴェ", "ve"), ("ヴォ", "vo"),
    ("ウィ", "wi"), ("ウェ", "we"), ("ウォ", "wo"),
    ("ファ", "fa"), ("フィ", "fi"), ("フェ", "fe"), ("フォ", "fo"),
    ("ツァ", "tsa"), ("ツィ", "tsi"), ("ツェ", "tse"), ("ツォ", "tso"),
    ("シェ", "she"), ("ジェ", "je"), ("チェ", "che"),
    ("イェ", "ye"),
)

ALL_HIRAGANA = MAIN_HIRAGANA + DAKUTEN_HIRAGANA + COMBINATION_HIRAGANA
ALL_KATAKANA = MAIN_KATAKANA + DAKUTEN_KATAKANA + COMBINATION_KATAKANA

CATALOGS: Dict[Tuple[KanaType, PracticeMode], Tuple[KanaItem, ...]] = {
    (KanaType.HIRAGANA, PracticeMode.MAIN): MAIN_HIRAGANA,
    (KanaType.HIRAGANA, PracticeMode.DAKUTEN): DAKUTEN_HIRAGANA,
    (KanaType.HIRAGANA, PracticeMode.COMBINATION): COMBINATION_HIRAGANA,
    (KanaType.HIRAGANA, PracticeMode.ALL): ALL_HIRAGANA,
    (KanaType.KATAKANA, PracticeMode.MAIN): MAIN_KATAKANA,
    (KanaType.KATAKANA, PracticeMode.DAKUTEN): DAKUTEN_KATAKANA,
    (KanaType.KATAKANA, PracticeMode.COMBINATION): COMBINATION_KATAKANA,
    (KanaType.KATAKANA, PracticeMode.ALL): ALL_KATAKANA,
}


def parse_kana_type(value: str | KanaType) -> KanaType:
    try:
        return KanaType(value)
    except ValueError:
        choices = ", ".join(t.value for t in KanaType)
        raise ConfigurationError(f"Unknown kana type '{value}' (expected one of: {choices})") from None


def parse_mode(value: str | PracticeMode) -> PracticeMode:
    try:
        return PracticeMode(value)
    except ValueError:
        choices = ", ".join(m.value for m in PracticeMode)
        raise ConfigurationError(f"Unknown practice mode '{value}' (expected one of: {choices})") from None


def get_catalog(kana_type: str | KanaType, mode: str | PracticeMode) -> Tuple[KanaItem, ...]:
    """Return the ordered, immutable catalog for a script and practice subset."""
    return CATALOGS[(parse_kana_type(kana_type), parse_mode(mode))]


def catalog_size(kana_type: str | KanaType, mode: str | PracticeMode) -> int:
    return len(get_catalog(kana_type, mode))


def romaji_lookup(kana_type: str | KanaType) -> Dict[str, str]:
    """Map romaji back to kana so a wrong answer can be shown as the kana it names.

    Several kana share a romaji (ジ/ヂ both read "ji"); the first one in
    catalog order wins.
    """
    lookup: Dict[str, str] = {}
    for item in get_catalog(kana_type, PracticeMode.ALL):
        lookup.setdefault(item.romaji, item.kana)
    return lookup
