"""
question_bank.py — Static curated fallback bank
================================================
Read-only question bank shipped with the engine.  Always available; the
composer only reaches for it when the live sources come up short, and the
legacy distribution generator draws from it exclusively.

Format per entry:
    (id, question_text, [4 options], correct_answer, explanation)

Every entry is validated into a ``Question`` once at import time and the
resulting tuples are shared by all callers.
"""

from __future__ import annotations

from assessment_engine.models import (
    CATEGORIES,
    CODING,
    CULTURE,
    CURRENT_AFFAIRS,
    LANGUAGE,
    LOGIC,
    MATHEMATICS,
    VEDIC_KNOWLEDGE,
    Difficulty,
    Question,
    QuestionSource,
    validate_question,
)

E, M, H = Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD


_QUESTION_BANK: dict[str, dict[Difficulty, list[tuple]]] = {
    CODING: {
        E: [
            (
                "cod_e_01",
                "Which data structure follows the Last-In-First-Out (LIFO) principle?",
                ["Queue", "Stack", "Linked list", "Hash table"],
                "Stack",
                "A stack adds and removes elements from the same end, so the most "
                "recently pushed element is the first one popped.",
            ),
            (
                "cod_e_02",
                "What does HTML stand for?",
                ["HyperText Markup Language", "High Transfer Machine Language",
                 "Hyperlink Text Management Logic", "Home Tool Markup Language"],
                "HyperText Markup Language",
                "HTML is the HyperText Markup Language used to structure content on "
                "web pages.",
            ),
            (
                "cod_e_03",
                "Which of these values is a boolean?",
                ["\"true\"", "1.0", "False", "None"],
                "False",
                "Booleans have exactly two values, True and False; the quoted string "
                "and the number only look similar.",
            ),
            (
                "cod_e_04",
                "What is the index of the first element in a Python list?",
                ["0", "1", "-1", "It depends on the list length"],
                "0",
                "Python sequences are zero-indexed, so the first element lives at "
                "index 0 and the last at index -1.",
            ),
        ],
        M: [
            (
                "cod_m_01",
                "What is the time complexity of binary search on a sorted array of n elements?",
                ["O(n)", "O(log n)", "O(n log n)", "O(1)"],
                "O(log n)",
                "Binary search halves the remaining range on every comparison, so it "
                "needs at most about log2(n) steps.",
            ),
            (
                "cod_m_02",
                "Which HTTP method is idempotent and normally used to fully replace a resource?",
                ["POST", "PATCH", "PUT", "CONNECT"],
                "PUT",
                "PUT replaces the target resource with the request payload; sending "
                "the same PUT twice leaves the server in the same state.",
            ),
            (
                "cod_m_03",
                "In SQL, which clause filters groups produced by GROUP BY?",
                ["WHERE", "HAVING", "ORDER BY", "LIMIT"],
                "HAVING",
                "WHERE filters rows before grouping while HAVING filters the grouped "
                "results, so aggregate conditions belong in HAVING.",
            ),
            (
                "cod_m_04",
                "What does a hash function used by a hash table primarily provide?",
                ["Sorted iteration order", "A bucket index derived from the key",
                 "Encryption of stored values", "Automatic garbage collection"],
                "A bucket index derived from the key",
                "The hash maps each key to a bucket index, which is what gives hash "
                "tables their average constant-time lookups.",
            ),
        ],
        H: [
            (
                "cod_h_01",
                "Which algorithm finds shortest paths from a single source in a graph "
                "with non-negative edge weights?",
                ["Kruskal's algorithm", "Dijkstra's algorithm",
                 "Depth-first search", "Floyd's cycle detection"],
                "Dijkstra's algorithm",
                "Dijkstra's algorithm greedily settles the closest unsettled vertex, "
                "which is correct only when no edge weight is negative.",
            ),
            (
                "cod_h_02",
                "What is the worst-case time complexity of quicksort?",
                ["O(n log n)", "O(n)", "O(n^2)", "O(log n)"],
                "O(n^2)",
                "When every pivot is the smallest or largest element the partitions "
                "are maximally unbalanced and quicksort degrades to quadratic time.",
            ),
            (
                "cod_h_03",
                "Which technique stores the results of overlapping subproblems to "
                "avoid recomputing them?",
                ["Memoization", "Backtracking", "Polymorphism", "Tail recursion"],
                "Memoization",
                "Memoization caches subproblem results, turning exponential recursive "
                "solutions such as naive Fibonacci into polynomial ones.",
            ),
            (
                "cod_h_04",
                "In concurrent programming, what is a deadlock?",
                ["Two threads writing the same variable at once",
                 "Threads waiting on each other so none can proceed",
                 "A thread that finishes before it starts",
                 "A lock that is released twice"],
                "Threads waiting on each other so none can proceed",
                "A deadlock is a cycle of threads each holding a resource the next "
                "one needs, so every thread in the cycle waits forever.",
            ),
        ],
    },
    LOGIC: {
        E: [
            (
                "log_e_01",
                "What comes next in the sequence 2, 4, 8, 16, ...?",
                ["18", "24", "32", "64"],
                "32",
                "Each term doubles the previous one, so the term after 16 is 32.",
            ),
            (
                "log_e_02",
                "If all roses are flowers and this plant is a rose, then this plant is:",
                ["A tree", "A flower", "Not a flower", "Impossible to classify"],
                "A flower",
                "This is a classic syllogism: membership of the subset (roses) implies "
                "membership of the superset (flowers).",
            ),
            (
                "log_e_03",
                "Which word does not belong: apple, banana, carrot, mango?",
                ["apple", "banana", "carrot", "mango"],
                "carrot",
                "Apple, banana and mango are fruits; a carrot is a root vegetable.",
            ),
            (
                "log_e_04",
                "Tom is taller than Sam, and Sam is taller than Raj. Who is the shortest?",
                ["Tom", "Sam", "Raj", "Cannot be determined"],
                "Raj",
                "Taller-than is transitive, so the order is Tom > Sam > Raj and Raj is "
                "the shortest.",
            ),
        ],
        M: [
            (
                "log_m_01",
                "What is the logical negation of \"All students passed the exam\"?",
                ["No student passed the exam", "At least one student did not pass the exam",
                 "All students failed the exam", "Some students passed the exam"],
                "At least one student did not pass the exam",
                "Negating a universal statement gives an existential one: it is enough "
                "for a single student to have failed.",
            ),
            (
                "log_m_02",
                "If it rains the ground gets wet. The ground is not wet. What follows?",
                ["It rained", "It did not rain", "The ground is dry because of the sun",
                 "Nothing can be concluded"],
                "It did not rain",
                "This is modus tollens: from P implies Q and not Q we may conclude not P.",
            ),
            (
                "log_m_03",
                "A clock shows 3:15. What is the angle between the hour and minute hands?",
                ["0 degrees", "7.5 degrees", "15 degrees", "90 degrees"],
                "7.5 degrees",
                "At 3:15 the minute hand is at 90 degrees and the hour hand has moved a "
                "quarter of the way from 90 to 120 degrees, reaching 97.5 degrees.",
            ),
            (
                "log_m_04",
                "Which number completes the pattern 1, 1, 2, 3, 5, 8, ...?",
                ["11", "12", "13", "15"],
                "13",
                "In the Fibonacci sequence every term is the sum of the two before it, "
                "so the next term is 5 + 8 = 13.",
            ),
        ],
        H: [
            (
                "log_h_01",
                "Knights always tell the truth and knaves always lie. A says \"We are "
                "both knaves.\" What are A and B?",
                ["Both knights", "Both knaves", "A is a knave, B is a knight",
                 "A is a knight, B is a knave"],
                "A is a knave, B is a knight",
                "A knight could never claim to be a knave, so A lies; the claim is "
                "therefore false, which means B is not a knave.",
            ),
            (
                "log_h_02",
                "Which statement is logically equivalent to \"If P then Q\"?",
                ["If Q then P", "If not P then not Q", "If not Q then not P", "P and Q"],
                "If not Q then not P",
                "An implication is always equivalent to its contrapositive; the "
                "converse and the inverse are not.",
            ),
            (
                "log_h_03",
                "Five people shake hands with each other exactly once. How many "
                "handshakes happen?",
                ["5", "10", "20", "25"],
                "10",
                "Each handshake pairs two of the five people, so the count is "
                "5 choose 2, which equals 10.",
            ),
            (
                "log_h_04",
                "You have two ropes that each burn in exactly 60 minutes but unevenly. "
                "How can you measure 45 minutes?",
                ["Burn one rope from one end only",
                 "Light rope A at both ends and rope B at one end, then light B's other "
                 "end when A finishes",
                 "Cut each rope in half and burn the halves together",
                 "It cannot be done"],
                "Light rope A at both ends and rope B at one end, then light B's other "
                "end when A finishes",
                "Rope A burns out after 30 minutes; lighting the second end of rope B "
                "then halves its remaining 30 minutes, giving 15 more.",
            ),
        ],
    },
    LANGUAGE: {
        E: [
            (
                "lan_e_01",
                "Which word is a synonym of \"happy\"?",
                ["Sad", "Joyful", "Angry", "Tired"],
                "Joyful",
                "Joyful shares the meaning of happy; the other options describe "
                "different emotions or states.",
            ),
            (
                "lan_e_02",
                "Choose the correctly spelled word.",
                ["Recieve", "Receive", "Receeve", "Riceive"],
                "Receive",
                "The usual rule is i before e except after c, which gives receive.",
            ),
            (
                "lan_e_03",
                "What is the plural of \"child\"?",
                ["Childs", "Childes", "Children", "Childrens"],
                "Children",
                "Child has an irregular plural inherited from Old English: children.",
            ),
            (
                "lan_e_04",
                "Which word is an antonym of \"ancient\"?",
                ["Old", "Historic", "Modern", "Aged"],
                "Modern",
                "An antonym has the opposite meaning; modern is the opposite of ancient.",
            ),
        ],
        M: [
            (
                "lan_m_01",
                "Identify the figure of speech in \"The wind whispered through the trees.\"",
                ["Simile", "Personification", "Hyperbole", "Alliteration"],
                "Personification",
                "Whispering is a human action given to the wind, which makes the line "
                "personification.",
            ),
            (
                "lan_m_02",
                "Which sentence uses the apostrophe correctly?",
                ["The dog wagged it's tail.", "The dog wagged its tail.",
                 "The dog wagged its' tail.", "The dog wagged their's tail."],
                "The dog wagged its tail.",
                "Its is the possessive pronoun; it's always means it is or it has.",
            ),
            (
                "lan_m_03",
                "What is the meaning of the idiom \"to break the ice\"?",
                ["To damage something fragile", "To start a conversation in an awkward setting",
                 "To cool down a drink", "To end a friendship"],
                "To start a conversation in an awkward setting",
                "Breaking the ice means easing initial tension so people start talking.",
            ),
            (
                "lan_m_04",
                "Which word in \"She quickly finished her homework\" is an adverb?",
                ["She", "quickly", "finished", "homework"],
                "quickly",
                "Quickly modifies the verb finished by describing how the action was "
                "done, which is the job of an adverb.",
            ),
        ],
        H: [
            (
                "lan_h_01",
                "Which sentence is written in the passive voice?",
                ["The committee approved the proposal.", "The proposal was approved by the committee.",
                 "The committee is approving the proposal.", "The committee will approve the proposal."],
                "The proposal was approved by the committee.",
                "In the passive voice the object of the action becomes the subject and "
                "the agent moves into a by-phrase.",
            ),
            (
                "lan_h_02",
                "What does the word \"ubiquitous\" mean?",
                ["Rare and valuable", "Present everywhere", "Extremely loud", "Difficult to understand"],
                "Present everywhere",
                "Ubiquitous comes from the Latin ubique, meaning everywhere.",
            ),
            (
                "lan_h_03",
                "Which sentence correctly uses the subjunctive mood?",
                ["If I was you, I would apologise.", "If I were you, I would apologise.",
                 "If I am you, I would apologise.", "If I be you, I would apologise."],
                "If I were you, I would apologise.",
                "Hypothetical conditions take the subjunctive were, even with a "
                "singular subject such as I.",
            ),
            (
                "lan_h_04",
                "An \"oxymoron\" is best illustrated by which phrase?",
                ["As brave as a lion", "Deafening silence", "The sun smiled", "Buzzing bees"],
                "Deafening silence",
                "An oxymoron joins contradictory terms; silence cannot literally be "
                "deafening.",
            ),
        ],
    },
    MATHEMATICS: {
        E: [
            (
                "mat_e_01",
                "What is 15% of 200?",
                ["15", "20", "30", "35"],
                "30",
                "Fifteen percent means 15 per 100, so 200 × 0.15 = 30.",
            ),
            (
                "mat_e_02",
                "What is the area of a rectangle with sides 6 cm and 4 cm?",
                ["10 cm²", "20 cm²", "24 cm²", "48 cm²"],
                "24 cm²",
                "The area of a rectangle is length times width: 6 × 4 = 24 square "
                "centimetres.",
            ),
        ],
        M: [
            (
                "mat_m_01",
                "Solve for x: 3x + 7 = 22.",
                ["3", "5", "7", "15"],
                "5",
                "Subtract 7 from both sides to get 3x = 15, then divide by 3.",
            ),
            (
                "mat_m_02",
                "What is the probability of rolling a sum of 7 with two fair dice?",
                ["1/12", "1/6", "1/4", "7/36"],
                "1/6",
                "Six of the 36 equally likely outcomes sum to 7, and 6/36 simplifies "
                "to 1/6.",
            ),
        ],
        H: [
            (
                "mat_h_01",
                "What is the derivative of x³ with respect to x?",
                ["x²", "3x²", "3x", "x⁴/4"],
                "3x²",
                "By the power rule the derivative of xⁿ is n·xⁿ⁻¹, so x³ becomes 3x².",
            ),
            (
                "mat_h_02",
                "What is the sum of the interior angles of a hexagon?",
                ["360 degrees", "540 degrees", "720 degrees", "900 degrees"],
                "720 degrees",
                "A polygon with n sides has interior angles summing to (n − 2) × 180 "
                "degrees, and (6 − 2) × 180 = 720.",
            ),
        ],
    },
    CULTURE: {
        E: [
            (
                "cul_e_01",
                "Diwali is widely known as the festival of what?",
                ["Colours", "Lights", "Harvest", "Kites"],
                "Lights",
                "Diwali celebrates the victory of light over darkness, marked by lamps "
                "and candles.",
            ),
            (
                "cul_e_02",
                "Which country is home to the ancient city of Machu Picchu?",
                ["Mexico", "Peru", "Chile", "Bolivia"],
                "Peru",
                "Machu Picchu is a fifteenth-century Inca citadel in the Andes of Peru.",
            ),
        ],
        M: [
            (
                "cul_m_01",
                "Bharatanatyam is a classical dance form that originated in which Indian state?",
                ["Kerala", "Tamil Nadu", "Odisha", "Punjab"],
                "Tamil Nadu",
                "Bharatanatyam developed in the temples of Tamil Nadu.",
            ),
            (
                "cul_m_02",
                "Who painted the Mona Lisa?",
                ["Michelangelo", "Raphael", "Leonardo da Vinci", "Donatello"],
                "Leonardo da Vinci",
                "Leonardo da Vinci painted the Mona Lisa in the early sixteenth century.",
            ),
        ],
        H: [
            (
                "cul_h_01",
                "The Japanese art of repairing broken pottery with gold is called:",
                ["Ikebana", "Origami", "Kintsugi", "Bonsai"],
                "Kintsugi",
                "Kintsugi highlights cracks with lacquer mixed with gold, treating "
                "repair as part of an object's history.",
            ),
            (
                "cul_h_02",
                "Which ancient civilisation built the city of Mohenjo-daro?",
                ["Mesopotamian", "Indus Valley", "Egyptian", "Minoan"],
                "Indus Valley",
                "Mohenjo-daro was one of the largest settlements of the Indus Valley "
                "Civilisation.",
            ),
        ],
    },
    VEDIC_KNOWLEDGE: {
        E: [
            (
                "ved_e_01",
                "How many Vedas are traditionally recognised?",
                ["Two", "Three", "Four", "Six"],
                "Four",
                "The four Vedas are the Rigveda, Yajurveda, Samaveda and Atharvaveda.",
            ),
            (
                "ved_e_02",
                "Which Veda is considered the oldest?",
                ["Rigveda", "Samaveda", "Yajurveda", "Atharvaveda"],
                "Rigveda",
                "The Rigveda is the oldest of the four and is a collection of hymns.",
            ),
        ],
        M: [
            (
                "ved_m_01",
                "The Samaveda is primarily associated with which of the following?",
                ["Melodies and chants", "Medicine", "Astronomy", "Law"],
                "Melodies and chants",
                "The Samaveda sets verses, mostly drawn from the Rigveda, to melodies "
                "for singing.",
            ),
            (
                "ved_m_02",
                "The philosophical texts that conclude the Vedas are called:",
                ["Puranas", "Upanishads", "Sutras", "Smritis"],
                "Upanishads",
                "The Upanishads form the end portion of the Vedas, which is why they "
                "are also called Vedanta.",
            ),
        ],
        H: [
            (
                "ved_h_01",
                "Ayurveda is traditionally regarded as an upaveda of which Veda?",
                ["Rigveda", "Samaveda", "Atharvaveda", "Yajurveda"],
                "Atharvaveda",
                "Ayurveda is classed as an auxiliary knowledge of the Atharvaveda, "
                "which contains many healing hymns.",
            ),
            (
                "ved_h_02",
                "The Vedic mathematics sutra \"Ekadhikena Purvena\" means:",
                ["By one more than the previous one", "All from nine and the last from ten",
                 "Vertically and crosswise", "By the deficiency"],
                "By one more than the previous one",
                "Ekadhikena Purvena translates as by one more than the previous one and "
                "is used, for example, to square numbers ending in 5.",
            ),
        ],
    },
    CURRENT_AFFAIRS: {
        E: [
            (
                "cur_e_01",
                "Which organisation is responsible for coordinating international public health?",
                ["UNESCO", "World Health Organization", "World Bank", "Interpol"],
                "World Health Organization",
                "The World Health Organization is the United Nations agency that "
                "coordinates international public health.",
            ),
            (
                "cur_e_02",
                "The Paris Agreement is an international treaty on which issue?",
                ["Trade tariffs", "Climate change", "Nuclear disarmament", "Space exploration"],
                "Climate change",
                "The 2015 Paris Agreement commits its parties to limiting global "
                "warming.",
            ),
        ],
        M: [
            (
                "cur_m_01",
                "Which body sets monetary policy in India?",
                ["Ministry of Finance", "Reserve Bank of India", "SEBI", "NITI Aayog"],
                "Reserve Bank of India",
                "The Reserve Bank of India's Monetary Policy Committee sets the policy "
                "repo rate.",
            ),
            (
                "cur_m_02",
                "What does GDP measure?",
                ["Government debt", "Total value of goods and services produced in a country",
                 "Population growth", "Export surplus"],
                "Total value of goods and services produced in a country",
                "Gross Domestic Product is the market value of all final goods and "
                "services produced within a country in a period.",
            ),
        ],
        H: [
            (
                "cur_h_01",
                "The G20 brings together major economies primarily to coordinate on what?",
                ["Military alliances", "International economic and financial policy",
                 "Olympic hosting", "Internet governance"],
                "International economic and financial policy",
                "The G20 was formed to coordinate economic and financial policy among "
                "the world's largest economies.",
            ),
            (
                "cur_h_02",
                "Which agreement governs the use of Antarctica for peaceful and scientific purposes?",
                ["The Outer Space Treaty", "The Antarctic Treaty",
                 "The Geneva Convention", "The Kyoto Protocol"],
                "The Antarctic Treaty",
                "The Antarctic Treaty of 1959 reserves the continent for peaceful use "
                "and scientific cooperation.",
            ),
        ],
    },
}


def _build(category: str, difficulty: Difficulty, entry: tuple) -> Question:
    q_id, text, options, correct, explanation = entry
    return validate_question({
        "question_id":    q_id,
        "category":       category,
        "difficulty":     difficulty,
        "question_text":  text,
        "options":        options,
        "correct_answer": correct,
        "explanation":    explanation,
        "source":         QuestionSource.CURATED,
    })


_BANK: dict[tuple[str, Difficulty], tuple[Question, ...]] = {
    (category, difficulty): tuple(_build(category, difficulty, e) for e in entries)
    for category, cells in _QUESTION_BANK.items()
    for difficulty, entries in cells.items()
}


# ─── Public API ───────────────────────────────────────────────────────────────

def curated_questions(category: str, difficulty: Difficulty | str) -> tuple[Question, ...]:
    """All bank questions for one cell; empty tuple for unknown cells."""
    try:
        return _BANK.get((category, Difficulty(difficulty)), ())
    except ValueError:
        return ()


def all_questions() -> list[Question]:
    return [q for cell in _BANK.values() for q in cell]


def bank_summary() -> dict[str, dict[str, int]]:
    """``{category: {difficulty: count}}`` for every category, zero-filled."""
    return {
        category: {d.value: len(curated_questions(category, d)) for d in Difficulty}
        for category in CATEGORIES
    }


def search(term: str) -> list[Question]:
    """Case-insensitive search over question text and explanation."""
    needle = (term or "").lower()
    if not needle:
        return []
    return [
        q for q in all_questions()
        if needle in q.question_text.lower() or needle in q.explanation.lower()
    ]
