from __future__ import annotations

LCAT_LIST_PROMPT = """
You are reading a J-5 Labor Category Definitions document.
Extract every distinct Labor Category (LCAT) title defined in it.
Return strict JSON with keys:
- lcats: string[] (titles only, in document order, no descriptions)

Example: {"lcats": ["Program Manager", "Systems Engineer", "Cyber Security Specialist"]}
""".strip()

ALLOWED_LCAT_INSTRUCTION = """
HARD REQUIREMENT: the "lcat" value MUST be exactly one of the allowed J-5 titles below.
Do not invent a title and do not copy the candidate's current job title unless it is in the list.
Choose the closest fit from the list based on skills and experience.

Allowed J-5 LCATs:
{allowed_lcats_json}
""".strip()

OPEN_LCAT_INSTRUCTION = "Choose the most appropriate Federal Labor Category title for this candidate."

CANDIDATE_PROMPT = """
You are analyzing a resume for a Federal Government contracting role.

{lcat_instruction}

Level rules (by years of relevant experience):
- I: 0-5 years
- II: 6-10 years
- III: 10-15 years
- IV: 15-20 years
- V: 20+ years or a recognized subject matter expert
- PENDING: not enough information to decide

If no security clearance is stated, use "None".
If no location is stated, use "Unknown".

Return strict JSON with keys:
- name: string
- lcat: string
- level: one of [I, II, III, IV, V, PENDING]
- yearsExperience: number
- education: string
- certifications: string[]
- clearance: string
- location: string
- summary: string (short summary of skills and the justification for the level)
""".strip()

PROPOSAL_PROMPT = """
You are analyzing an RFP / SOW staffing document. Extract every staffing position.
For each position identify title, LCAT, level (I-V), LOE in FTE, location, clearance,
education requirement, required certifications and required skills.

If effort is given in hours instead of FTE, convert 1880-1920 hours to 1.0 FTE.

Return strict JSON with keys:
- proposalName: string
- positions: array of objects with keys:
  - title: string
  - lcat: string
  - level: one of [I, II, III, IV, V]
  - loe: number (FTE, e.g. 1.0)
  - location: string
  - clearance: string
  - educationReq: string
  - certificationsReq: string[]
  - skillsReq: string[]
""".strip()

PROPOSAL_TEXT_PREFIX = "Proposal text:\n{proposal_text}\n\n"

OPTIMIZATION_PROMPT = """
You are performing staffing optimization: match candidates to proposal positions.

Candidates:
{candidates_json}

Proposals:
{proposals_json}

Rules:
1. Match on LCAT, level, education, certifications, clearance and skills.
2. LCAT alignment is the primary criterion; the candidate lcat should match or closely align
   with the position lcat.
3. A candidate may not be assigned more than 1.0 FTE in total across all proposals.
4. assignedLoe should equal the position loe.
5. Maximize score (0-100) for overall fit quality.
6. Give a brief reasoning for every match.
7. Use the exact id values from the input for proposalId, positionId and candidateId.
8. If no suitable candidate exists for a position, leave that position out.

Return strict JSON with keys:
- assignments: array of objects with keys:
  - proposalId: string
  - positionId: string
  - candidateId: string
  - score: number (0..100)
  - reasoning: string
  - assignedLoe: number
""".strip()
