"""Prompt construction for certification question generation."""

from __future__ import annotations

from datetime import UTC, datetime

from app.schema.certifications import DEFAULT_QUESTION_WEIGHT, domain_weight

_SCHEMA_RULES = """CRITICAL SCHEMA REQUIREMENTS - YOU MUST FOLLOW THIS EXACTLY:

1. OPTIONS FORMAT (REQUIRED):
   Options MUST be an array of objects with "text" and "isCorrect" properties:
   "options": [
     {{"text": "First option text", "isCorrect": false}},
     {{"text": "Second option text", "isCorrect": true}},
     {{"text": "Third option text", "isCorrect": false}},
     {{"text": "Fourth option text", "isCorrect": false}}
   ]
   {options_note}

2. CORRECT ANSWER FORMAT (REQUIRED):
{answer_rules}

3. EXPLANATION_DETAILS FORMAT (REQUIRED):
   Must be a structured object with these exact keys:
   "explanation_details": {{
     "summary": "One-line summary introducing the concept:",
     "breakdown": [
       "First key point explaining why this is correct",
       "Second key point with technical details",
       "Third point about implementation"
     ],
     "otherOptions": "Option A is wrong because...\\nOption C is wrong because...\\nOption D is wrong because..."
   }}
"""

_CONTENT_RULES = """CONTENT REQUIREMENTS:
1. NEVER copy or paraphrase existing exam questions
2. Create original scenarios based on real-world {year} cloud architectures
3. Questions must test practical application, not memorization
4. Use current cloud services and best practices
5. Provide detailed explanations with technical reasoning
6. Include relevant references in the "references" field as an array of strings

REFERENCES REQUIREMENTS:
- Include 2-4 official documentation references per question
- For CV0-004: Include CompTIA Cloud+ official study materials, AWS/Azure/GCP documentation, or industry best practice guides
- For SAA-C03: Include AWS Well-Architected Framework, AWS service documentation, or AWS whitepapers
- Format as array: ["Reference 1", "Reference 2", "Reference 3"]
- Examples: ["AWS Well-Architected Framework - Reliability Pillar", "AWS EC2 User Guide - Auto Scaling", "CompTIA Cloud+ Study Guide Chapter 5"]
- If no specific references apply, use: ["Official {certification_type} Exam Objectives", "Industry Best Practices"]
"""

_STRUCTURE_RULES = """QUESTION STRUCTURE:
1. Start with a realistic business scenario (healthcare, finance, manufacturing, etc.)
2. Include specific technical constraints (budgets, timelines, requirements)
3. Present 4-5 plausible options (all within same technical domain)
{answer_marking}
5. Provide comprehensive explanation with implementation details

AVOID:
- Generic placeholder distractors like "Outdated legacy method"
- Obviously wrong answers
- Options from completely different domains
- Surface-level explanations

Generate {count} question(s) and return ONLY a JSON array with this EXACT structure:
"""

_SINGLE_EXAMPLE = """[
  {{
    "question_text": "A healthcare company needs to deploy patient monitoring...",
    "options": [
      {{"text": "Configure CloudWatch with custom metrics and SNS notifications", "isCorrect": false}},
      {{"text": "Implement real-time replication with hot standby and automated failover", "isCorrect": true}},
      {{"text": "Set up weekly backups to cold storage with manual recovery", "isCorrect": false}},
      {{"text": "Deploy read replicas without failover automation", "isCorrect": false}}
    ],
    "correct_answer": "Implement real-time replication with hot standby and automated failover",
    "multiple_answers": null,
    "correct_answers": null,
    "explanation": "Real-time patient monitoring requires immediate failover capabilities. Hot standby with real-time replication ensures near-zero data loss and immediate recovery, critical for life-safety systems.",
    "explanation_details": {{
      "summary": "High-availability requirements for critical healthcare systems:",
      "breakdown": [
        "Real-time replication prevents data loss during outages",
        "Hot standby enables immediate failover (seconds vs minutes)",
        "Automated failover reduces human error and response time",
        "Meets healthcare compliance requirements for system availability"
      ],
      "otherOptions": "CloudWatch monitoring alone doesn't provide failover\\nWeekly backups create unacceptable data loss risk\\nRead replicas without failover require manual intervention"
    }},
    "domain": "{domain}",
    "subdomain": "{subdomain}",
    "cognitive_level": "{cognitive_level}",
    "skill_level": "{skill_level}",
    "weight": {weight},
    "tags": [],
    "references": ["AWS Well-Architected Framework - Reliability Pillar", "AWS EC2 User Guide - High Availability", "CompTIA Cloud+ Study Guide - Disaster Recovery"]
  }}
]"""

_MULTIPLE_EXAMPLE = """[
  {{
    "question_text": "A healthcare company needs to deploy patient monitoring...",
    "options": [
      {{"text": "Configure CloudWatch with custom metrics and SNS notifications", "isCorrect": true}},
      {{"text": "Implement real-time replication with hot standby and automated failover", "isCorrect": true}},
      {{"text": "Set up weekly backups to cold storage with manual recovery", "isCorrect": false}},
      {{"text": "Deploy read replicas without failover automation", "isCorrect": false}}
    ],
    "correct_answer": null,
    "multiple_answers": "1",
    "correct_answers": ["Configure CloudWatch with custom metrics and SNS notifications", "Implement real-time replication with hot standby and automated failover"],
    "explanation": "Real-time patient monitoring requires both monitoring and failover capabilities. CloudWatch provides visibility while hot standby ensures availability.",
    "explanation_details": {{
      "summary": "High-availability requirements for critical healthcare systems:",
      "breakdown": [
        "Real-time monitoring enables proactive issue detection",
        "Hot standby enables immediate failover (seconds vs minutes)",
        "Both monitoring and failover are required for critical systems"
      ],
      "otherOptions": "Weekly backups create unacceptable data loss risk\\nRead replicas without failover require manual intervention"
    }},
    "domain": "{domain}",
    "subdomain": "{subdomain}",
    "cognitive_level": "{cognitive_level}",
    "skill_level": "{skill_level}",
    "weight": {weight},
    "tags": [],
    "references": ["AWS Well-Architected Framework - Reliability Pillar", "AWS EC2 User Guide - High Availability", "CompTIA Cloud+ Study Guide - Disaster Recovery"]
  }}
]"""

_REMINDERS = """CRITICAL REMINDERS:
- correct_answer must be FULL TEXT, not a letter (A, B, C, D) or index (0, 1, 2, 3)
- correct_answers must be array of FULL TEXT strings or null
- multiple_answers must be null for single-answer questions or "1" (string) for multiple-answer questions
- explanation_details must have summary, breakdown (array), and otherOptions (string with \\n)
- options must have isCorrect boolean field
- references must be an array of strings (2-4 references) with official documentation sources, or null if none apply
{final_rule}
- Return ONLY valid JSON with no markdown code blocks or extra text"""


def build_generation_prompt(
  *,
  certification_type: str,
  count: int = 1,
  domain_name: str | None = None,
  cognitive_level: str | None = None,
  skill_level: str | None = None,
  scenario_context: str | None = None,
  multiple_answers: bool = False,
  year: int | None = None,
) -> str:
  """Build the instruction sent to the model for `count` questions.

  Output depends only on the arguments; `year` defaults to the current UTC year.
  """
  current_year = year if year is not None else datetime.now(UTC).year
  weight = domain_weight(domain_name)

  if multiple_answers:
    options_note = 'NOTE: For multiple-answer questions, mark 2-3 options as "isCorrect": true'
    answer_rules = '   - Multiple answers: "correct_answer": null, "correct_answers": ["Full text of option 1", "Full text of option 2"], "multiple_answers": "1"\n   - Mark 2-3 options with "isCorrect": true'
    answer_marking = '4. Mark 2-3 correct answers with "isCorrect": true (multiple-answer question)'
    final_rule = '- For multiple-answer questions: mark 2-3 options as "isCorrect": true, set correct_answer to null, and provide correct_answers array'
    example_template = _MULTIPLE_EXAMPLE
  else:
    options_note = ""
    answer_rules = '   - Single answer: "correct_answer": "Full text of correct option", "correct_answers": null, "multiple_answers": null\n   - Mark exactly ONE option with "isCorrect": true'
    answer_marking = '4. Mark exactly ONE correct answer with "isCorrect": true (single-answer question)'
    final_rule = '- For single-answer questions: mark exactly ONE option as "isCorrect": true, set correct_answers to null, and provide correct_answer text'
    example_template = _SINGLE_EXAMPLE

  sections = [
    f"You are an expert certification exam question writer for {certification_type}.\n",
    _SCHEMA_RULES.format(options_note=options_note, answer_rules=answer_rules),
    _CONTENT_RULES.format(year=current_year, certification_type=certification_type),
  ]

  # Optional focus lines narrow the generated scenario.
  focus_lines: list[str] = []
  if domain_name:
    focus_lines.append(f"DOMAIN FOCUS: {domain_name} (Weight: {weight}%)" if weight is not None else f"DOMAIN FOCUS: {domain_name}")
  if cognitive_level:
    focus_lines.append(f"COGNITIVE LEVEL: {cognitive_level} (Bloom's Taxonomy)")
  if skill_level:
    focus_lines.append(f"SKILL LEVEL: {skill_level}")
  if scenario_context:
    focus_lines.append(f"SCENARIO CONTEXT: {scenario_context}")
  if focus_lines:
    sections.append("\n".join(focus_lines) + "\n")

  sections.append(_STRUCTURE_RULES.format(answer_marking=answer_marking, count=count))
  sections.append(
    example_template.format(
      domain=domain_name or "Cloud Operations and Support",
      subdomain="Disaster Recovery" if domain_name else "High Availability",
      cognitive_level=cognitive_level or "Application",
      skill_level=skill_level or "Intermediate",
      weight=weight if weight is not None else DEFAULT_QUESTION_WEIGHT,
    )
    + "\n"
  )
  sections.append(_REMINDERS.format(final_rule=final_rule))
  return "\n".join(sections)
