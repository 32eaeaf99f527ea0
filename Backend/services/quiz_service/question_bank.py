# services/quiz_service/question_bank.py
"""
Static question bank: nine programming topics, each an ordered list of
multiple-choice questions. Read-only at runtime.

Difficulty is a 1-30 scale; see models.points_for_difficulty for scoring:
- <= 10  -> Easy   (10 pts)
- <= 20  -> Medium (20 pts)
- else   -> Hard   (30 pts)
"""

from __future__ import annotations
from typing import Dict, Any, List, Optional, Tuple

from .models import Question, Topic


def _q(text: str, options: List[str], correct: str, difficulty: int) -> Question:
    return Question(question=text, options=tuple(options), correct=correct, difficulty=difficulty)


# ============================================================================
# Topics
# ============================================================================

_TOPIC_DATA: List[Tuple[str, List[Question]]] = [
    ("variables", [
        _q("Which keyword declares a block-scoped variable that can be reassigned in JavaScript?",
           ["var", "let", "const", "static"], "let", 5),
        _q("What is the value of an uninitialized variable declared with let?",
           ["null", "0", "undefined", "NaN"], "undefined", 8),
        _q("Which declaration cannot be reassigned after initialization?",
           ["var", "let", "const", "function"], "const", 12),
        _q("What happens when you access a let variable before its declaration?",
           ["It returns undefined", "It throws a ReferenceError", "It returns null", "It is hoisted as 0"],
           "It throws a ReferenceError", 18),
        _q("Which statement about const objects is true?",
           ["Their properties cannot change", "The binding cannot be reassigned",
            "They are deep-frozen", "They are copied on assignment"],
           "The binding cannot be reassigned", 25),
    ]),
    ("loops", [
        _q("Which loop always runs its body at least once?",
           ["for", "while", "do...while", "for...of"], "do...while", 6),
        _q("Which statement skips the rest of the current iteration?",
           ["break", "continue", "return", "skip"], "continue", 9),
        _q("How many times does `for (let i = 0; i < 5; i += 2)` run its body?",
           ["2", "3", "5", "6"], "3", 14),
        _q("Which loop iterates over the values of an array?",
           ["for...in", "for...of", "while", "forEach...in"], "for...of", 17),
        _q("What does `for...in` iterate over on an object?",
           ["Values", "Enumerable property keys", "Prototype methods only", "Symbols"],
           "Enumerable property keys", 24),
    ]),
    ("conditions", [
        _q("Which operator checks equality without type coercion?",
           ["==", "===", "=", "!="], "===", 4),
        _q("What does the ternary `a ? b : c` return when a is falsy?",
           ["a", "b", "c", "undefined"], "c", 10),
        _q("Which value is falsy?",
           ["'0'", "[]", "0", "{}"], "0", 13),
        _q("What is missing from a switch case that causes fall-through?",
           ["default", "break", "continue", "return type"], "break", 19),
        _q("What does `null ?? 'x'` evaluate to?",
           ["null", "'x'", "undefined", "false"], "'x'", 26),
    ]),
    ("functions", [
        _q("Which keyword sends a value back from a function?",
           ["yield", "return", "break", "emit"], "return", 3),
        _q("What does a function return when it has no return statement?",
           ["null", "0", "undefined", "false"], "undefined", 9),
        _q("Which syntax defines an arrow function?",
           ["function => {}", "() => {}", "-> {}", "fn() {}"], "() => {}", 15),
        _q("What is a closure?",
           ["A function with no parameters", "A function bundled with its lexical scope",
            "A function that returns nothing", "A function stored in an object"],
           "A function bundled with its lexical scope", 22),
        _q("Arrow functions do not have their own binding of which value?",
           ["arguments length", "this", "return", "name"], "this", 28),
    ]),
    ("data_structures", [
        _q("Which structure follows last-in, first-out order?",
           ["Queue", "Stack", "Set", "Map"], "Stack", 5),
        _q("Which structure stores only unique values?",
           ["Array", "Set", "Stack", "List"], "Set", 8),
        _q("Which structure follows first-in, first-out order?",
           ["Stack", "Queue", "Tree", "Heap"], "Queue", 11),
        _q("Which built-in keeps key insertion order and accepts any key type?",
           ["Object", "Map", "WeakSet", "Array"], "Map", 20),
        _q("What is the average lookup time of a hash map?",
           ["O(1)", "O(log n)", "O(n)", "O(n log n)"], "O(1)", 27),
    ]),
    ("input_output", [
        _q("Which method prints a message to the browser console?",
           ["print()", "console.log()", "echo()", "write()"], "console.log()", 2),
        _q("Which function shows a dialog asking the user for text?",
           ["alert()", "confirm()", "prompt()", "input()"], "prompt()", 9),
        _q("Which console method prints tabular data?",
           ["console.grid()", "console.table()", "console.list()", "console.dir()"], "console.table()", 16),
        _q("What type does prompt() return when the user clicks OK?",
           ["number", "string", "boolean", "object"], "string", 18),
        _q("Which method turns a JavaScript object into a JSON string?",
           ["JSON.parse()", "JSON.stringify()", "Object.toJSON()", "String(obj)"], "JSON.stringify()", 23),
    ]),
    ("operators", [
        _q("What does the % operator compute?",
           ["Percentage", "Remainder", "Division", "Exponent"], "Remainder", 4),
        _q("What is the result of `2 ** 3`?",
           ["6", "8", "9", "5"], "8", 7),
        _q("What does `'5' + 3` evaluate to?",
           ["8", "'53'", "NaN", "'8'"], "'53'", 14),
        _q("What does `!!'hello'` evaluate to?",
           ["'hello'", "true", "false", "undefined"], "true", 19),
        _q("What does `a && b` return when a is truthy?",
           ["a", "b", "true", "false"], "b", 29),
    ]),
    ("strings", [
        _q("Which property gives the number of characters in a string?",
           ["size", "length", "count", "chars"], "length", 3),
        _q("Which method converts a string to upper case?",
           ["toUpper()", "upperCase()", "toUpperCase()", "capitalize()"], "toUpperCase()", 8),
        _q("Which syntax creates a template literal?",
           ["'text'", "\"text\"", "`text`", "<text>"], "`text`", 12),
        _q("What does `'abc'.slice(-1)` return?",
           ["'a'", "'c'", "'ab'", "''"], "'c'", 17),
        _q("Are JavaScript strings mutable?",
           ["Yes", "No", "Only with let", "Only in strict mode"], "No", 22),
    ]),
    ("arrays", [
        _q("Which method adds an element to the end of an array?",
           ["push()", "pop()", "shift()", "unshift()"], "push()", 2),
        _q("What is the index of the first element of an array?",
           ["1", "0", "-1", "It depends"], "0", 5),
        _q("Which method creates a new array with the results of calling a function on every element?",
           ["forEach()", "map()", "filter()", "reduce()"], "map()", 13),
        _q("Which method returns the first element that satisfies a predicate?",
           ["filter()", "find()", "some()", "indexOf()"], "find()", 18),
        _q("What does `[1, 2, 3].reduce((a, b) => a + b, 0)` return?",
           ["0", "3", "6", "[1, 2, 3]"], "6", 25),
    ]),
]

TOPICS: Tuple[Topic, ...] = tuple(Topic(name=name, questions=tuple(qs)) for name, qs in _TOPIC_DATA)

_BY_NAME: Dict[str, Topic] = {t.name: t for t in TOPICS}

# ============================================================================
# Learning resources shown on the result screen
# ============================================================================

LEARNING_RESOURCES: Dict[str, List[Dict[str, str]]] = {
    "variables": [
        {"title": "MDN Web Docs: Variables", "url": "https://developer.mozilla.org/en-US/docs/Learn/JavaScript/First_steps/Variables"},
        {"title": "W3Schools: JavaScript Variables", "url": "https://www.w3schools.com/js/js_variables.asp"},
    ],
    "loops": [
        {"title": "MDN Web Docs: Loops and Iteration", "url": "https://developer.mozilla.org/en-US/docs/Web/JavaScript/Guide/Loops_and_iteration"},
        {"title": "W3Schools: JavaScript Loops", "url": "https://www.w3schools.com/js/js_loop_for.asp"},
    ],
    "conditions": [
        {"title": "MDN Web Docs: Conditionals", "url": "https://developer.mozilla.org/en-US/docs/Learn/JavaScript/Building_blocks/conditionals"},
        {"title": "W3Schools: JavaScript If Else", "url": "https://www.w3schools.com/js/js_if_else.asp"},
    ],
    "functions": [
        {"title": "MDN Web Docs: Functions", "url": "https://developer.mozilla.org/en-US/docs/Web/JavaScript/Guide/Functions"},
        {"title": "W3Schools: JavaScript Functions", "url": "https://www.w3schools.com/js/js_functions.asp"},
    ],
    "data_structures": [
        {"title": "MDN Web Docs: Arrays", "url": "https://developer.mozilla.org/en-US/docs/Web/JavaScript/Reference/Global_Objects/Array"},
        {"title": "W3Schools: JavaScript Arrays", "url": "https://www.w3schools.com/js/js_arrays.asp"},
    ],
    "input_output": [
        {"title": "MDN Web Docs: Console", "url": "https://developer.mozilla.org/en-US/docs/Web/API/console"},
        {"title": "W3Schools: JavaScript Output", "url": "https://www.w3schools.com/js/js_output.asp"},
    ],
    "operators": [
        {"title": "MDN Web Docs: Operators", "url": "https://developer.mozilla.org/en-US/docs/Web/JavaScript/Guide/Expressions_and_operators"},
        {"title": "W3Schools: JavaScript Operators", "url": "https://www.w3schools.com/js/js_operators.asp"},
    ],
    "strings": [
        {"title": "MDN Web Docs: Strings", "url": "https://developer.mozilla.org/en-US/docs/Web/JavaScript/Reference/Global_Objects/String"},
        {"title": "W3Schools: JavaScript Strings", "url": "https://www.w3schools.com/js/js_strings.asp"},
    ],
    "arrays": [
        {"title": "MDN Web Docs: Arrays", "url": "https://developer.mozilla.org/en-US/docs/Web/JavaScript/Reference/Global_Objects/Array"},
        {"title": "W3Schools: JavaScript Arrays", "url": "https://www.w3schools.com/js/js_arrays.asp"},
    ],
}

# ============================================================================
# Public API
# ============================================================================

def get_topic(name: str) -> Optional[Topic]:
    return _BY_NAME.get(name)


def topic_names() -> List[str]:
    return [t.name for t in TOPICS]


def total_question_count(topics=TOPICS) -> int:
    return sum(t.question_count for t in topics)


def resources_for(name: str) -> List[Dict[str, str]]:
    return list(LEARNING_RESOURCES.get(name, []))


def topic_summary(topic: Topic) -> Dict[str, Any]:
    return {
        "name": topic.name,
        "display_name": topic.display_name,
        "question_count": topic.question_count,
        "max_score": topic.max_score,
    }
