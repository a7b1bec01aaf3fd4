from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..game.words import StaticWordSupplier, UnknownDifficultyError, pick_words

bp = Blueprint("words", __name__)

_supplier = StaticWordSupplier()


@bp.get("/words")
def get_words():
    try:
        count = int(request.args.get("count", "3"))
    except ValueError:
        count = 3
    count = max(1, min(count, 20))

    difficulty = request.args.get("difficulty", "easy").strip().lower()
    try:
        words = _supplier.words_for(difficulty)  # type: ignore[arg-type]
    except UnknownDifficultyError:
        return jsonify({"error": "invalid_difficulty"}), 400

    return jsonify({"difficulty": difficulty, "words": pick_words(words, count)})
