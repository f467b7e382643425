"""Prompt templates for AI verification scoring.

One template per entity kind. Each asks for a single JSON object with an
overall `score`, the kind's sub-scores and narrative fields, and the shared
`keyFindings` / `flags` / `recommendations` keys. The normalizer reads only
the keys named here.

Documents are forwarded by reference only; the model sees the count and
URIs, never document content.
"""

VERIFICATION_SYSTEM_PROMPT = """You are a verification analyst for an education donation platform that connects donors with schools, students and colleges in India.

Assess registration data for legitimacy and internal consistency. Be constructive and realistic: flag concrete anomalies, never invent facts that are not in the data.

Respond with exactly one JSON object and no other text. All scores are integers from 0 to 100."""


SCHOOL_VERIFICATION_PROMPT = """Analyze the following school registration data and documents for verification:

School Information:
- School Name: {schoolName}
- Registration Number: {registrationNumber}
- Address: {address}
- Contact Person: {contactPerson}
- Principal Name: {principalName}
- Phone: {phone}
- Documents Provided: {document_count} documents
{document_list}
Evaluate the following aspects:
1. Document authenticity indicators (registration certificates, affiliation proof)
2. Data consistency across all provided fields
3. Contact information validity patterns
4. Any red flags or anomalies in the information
5. Overall legitimacy assessment

Provide a JSON response with the following structure:
{{
  "score": <number 0-100>,
  "confidence": <number 0-100>,
  "documentAuthenticity": <number 0-100>,
  "dataConsistency": <number 0-100>,
  "anomalyDetection": "<description of any anomalies found>",
  "keyFindings": ["<finding1>", "<finding2>", "<finding3>"],
  "flags": ["<concern1>", "<concern2>"],
  "recommendations": "<recommendations for verification>"
}}

Focus on realistic verification patterns and provide constructive analysis."""


STUDENT_VERIFICATION_PROMPT = """Analyze the following student profile for scholarship/sponsorship verification:

Student Information:
- Student Name: {studentName}
- Grade: {grade}
- Category: {category}
- Achievement Details: {achievementDetails}
- Financial Need: ₹{financialNeed}
- Documents Provided: {document_count} documents
{document_list}
Evaluate:
1. Achievement certificate validity indicators
2. Financial need reasonability for the grade/category
3. Profile consistency and completeness
4. Document authenticity patterns
5. Overall credibility assessment

Provide JSON response:
{{
  "score": <number 0-100>,
  "confidence": <number 0-100>,
  "credibilityScore": <number 0-100>,
  "documentValidity": <number 0-100>,
  "needAssessment": "<assessment of financial need reasonability>",
  "keyFindings": ["<finding1>", "<finding2>"],
  "flags": ["<concern1>", "<concern2>"],
  "recommendations": "<verification recommendations>"
}}"""


REQUEST_VERIFICATION_PROMPT = """Analyze the following infrastructure/funding request for verification:

Request Information:
- Title: {title}
- Type: {requestType}
- Category: {category}
- Amount Needed: ₹{amountNeeded}
- Description: {description}
- Supporting Documents: {document_count} documents
{document_list}
Evaluate:
1. Budget reasonability and market rate alignment
2. Necessity and urgency assessment
3. Supporting evidence quality and completeness
4. Risk of fraud or misrepresentation
5. Overall legitimacy of the request

Provide JSON response:
{{
  "score": <number 0-100>,
  "confidence": <number 0-100>,
  "legitimacyScore": <number 0-100>,
  "needValidation": <number 0-100>,
  "budgetReasonability": "<assessment of budget vs market rates>",
  "riskAssessment": "<risk analysis>",
  "keyFindings": ["<finding1>", "<finding2>"],
  "flags": ["<concern1>", "<concern2>"],
  "recommendations": "<verification recommendations>"
}}"""


COLLEGE_VERIFICATION_PROMPT = """Analyze the following college credentials for verification:

College Information:
- College Name: {collegeName}
- Affiliation Number: {affiliationNumber}
- Address: {address}
- Contact Person: {contactPerson}
- Phone: {phone}
- Documents Provided: {document_count} documents
{document_list}
Evaluate:
1. Accreditation document validity indicators
2. Institutional registration authenticity
3. Affiliation number format and validity patterns
4. Overall institutional credibility assessment
5. Any red flags or concerns

Provide JSON response:
{{
  "score": <number 0-100>,
  "confidence": <number 0-100>,
  "institutionalCredibility": <number 0-100>,
  "accreditationValidity": <number 0-100>,
  "keyFindings": ["<finding1>", "<finding2>"],
  "flags": ["<concern1>", "<concern2>"],
  "recommendations": "<verification recommendations>"
}}"""


# Keyed by EntityKind value
VERIFICATION_PROMPTS = {
    "school": SCHOOL_VERIFICATION_PROMPT,
    "student": STUDENT_VERIFICATION_PROMPT,
    "request": REQUEST_VERIFICATION_PROMPT,
    "college": COLLEGE_VERIFICATION_PROMPT,
}
