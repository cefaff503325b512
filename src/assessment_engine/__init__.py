"""
assessment_engine — Assessment Composition & Scoring Engine
============================================================
Builds a personalised multiple-choice assignment from a learner's
background and scores the submitted answers against a fixed rubric.

Module map
----------
  models.py                    Enums, study-field registry, weight tables,
                               Question (Pydantic), attempt / report records.
  errors.py                    Exception taxonomy.
  config.py                    Settings loaded from .env; live / mock detection.
  question_bank.py             Static curated fallback bank.
  database.py                  SQLite persistence (questions, field mappings,
                               usage stats, attempt reports).
  rate_limiter.py              Fixed-interval limiter for external calls.
  guardrails.py                A-01..A-04 assembly / T-01..T-02 attempt checks.
  agent_trace.py               Lightweight AgentStep / RunTrace audit log.

  b0_field_detector.py         Block 0: keyword study-field detection.
  b1_distribution_planner.py   Block 1: primary category + difficulty split.
  b2_question_store.py         Block 2: question store adapter (SQLite).
  b2_generative_provider.py    Block 2: Azure OpenAI question generation.
  b3_question_composer.py      Block 3: three-tier composer.
  b3_legacy_generator.py       Block 3: legacy distribution fallback.
  b4_response_scorer.py        Block 4: rubric scorer + usage statistics.
  b5_attempt_aggregator.py     Block 5: report, grade, narrative feedback.
  engine.py                    compose_assignment / evaluate_attempt facade.
  cli.py                       Rich terminal runner (assess-quiz).

Pipeline order
--------------
  B0 (detect field) → B1 (plan counts)
  → B3 tier 1 (field-mapped / general) → tier 2 (generate | general)
  → tier 3 (curated top-up)  ⟶ legacy fallback on unexpected error
  → GuardrailsPipeline [A-01..A-04]
  ** learner answers the assignment **
  → GuardrailsPipeline [T-01..T-02]
  → B4 (score each response) → B5 (aggregate report)
"""
__version__ = "0.1.0"
