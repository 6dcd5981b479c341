"""Prompt templates for CV summarisation and cover letter generation."""

CV_SUMMARY_SYSTEM = (
    "You summarise CVs for a cover letter writer. Keep roles, employers, dates, "
    "measurable achievements and core skills. Return plain text, no preamble."
)

COVER_LETTER_SYSTEM = (
    "You are an expert career coach and professional writer. Write a persuasive, "
    "professionally formatted cover letter that gets the applicant an interview. "
    "Use ONLY the job description for job details. "
    "Respond with a JSON object with keys: coverLetter (string), jobTitle (string), "
    "companyName (string), keyFocusPoints (array of 3-5 strings)."
)

DEFAULT_TONE = "Professional and Confident"


def build_cover_letter_prompt(request, cv_summary: str) -> str:
    lines = [
        "Applicant Information:",
        f"- Full Name: {request.full_name}",
        f"- Location: {request.user_location}",
    ]
    if request.phone:
        lines.append(f"- Phone: {request.phone}")
    if request.email:
        lines.append(f"- Email: {request.email}")
    if request.linkedin_url:
        lines.append(f"- LinkedIn: {request.linkedin_url}")

    lines += [
        "",
        f"Tone: {request.tone or DEFAULT_TONE}",
        f"Target length: {request.page_length or 1} page(s)",
    ]
    if request.must_have_info:
        lines.append(f"Must include: {request.must_have_info}")

    lines += ["", "CV Summary:", cv_summary, "", "Job Description:", request.job_description]

    if request.supporting_documents:
        lines += ["", "Supporting Documents:"]
        lines += [f"- {doc}" for doc in request.supporting_documents]
    if request.portfolio_urls:
        lines += ["", "Portfolio URLs:"]
        lines += [f"- {url}" for url in request.portfolio_urls]

    return "\n".join(lines)
