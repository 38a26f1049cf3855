"""
Prompt builders for Shadow.

Analysis prompts ask the model for a fixed set of markdown sections
(executive summary, critical issues, risk score, recommendations,
attack chains) because the response extractor scans for those
headings. The deep profile uses three stage prompts, each fed the
text produced by the stages before it.
"""

from __future__ import annotations

from collections.abc import Sequence

from shadow.models.agent import AgentType
from shadow.models.finding import Finding

NO_FINDINGS_TEXT = "No findings detected."

BASE_SYSTEM_PROMPT = "You are an expert security analyst and penetration tester."

ANALYST_SYSTEM_PROMPT = """You are an expert security analyst and penetration tester with deep knowledge of:
- Web application security (OWASP Top 10)
- Network security and reconnaissance
- Vulnerability assessment and exploitation
- Secure coding practices
- Risk assessment and prioritization

Your role is to:
1. Analyze security scan results thoroughly
2. Identify critical vulnerabilities and their impact
3. Provide actionable remediation steps
4. Prioritize findings by risk level
5. Explain attack chains and exploitation scenarios

Always provide:
- Clear, concise analysis
- Specific remediation steps
- Risk scores with justification
- Practical security recommendations

Be direct and technical. Focus on actionable insights."""

ROLE_PROMPTS: dict[AgentType, str] = {
    AgentType.QUICK_SCAN: """
Your role: QUICK SCANNER
- Perform rapid triage of scan results
- Identify obvious vulnerabilities quickly
- Flag critical issues for deeper analysis
- Keep analysis concise and actionable""",
    AgentType.RECON: """
Your role: RECONNAISSANCE ANALYST
- Analyze target attack surface comprehensively
- Identify exposed services and technologies
- Map potential entry points
- Assess configuration weaknesses
- Provide detailed reconnaissance insights""",
    AgentType.VULNERABILITY: """
Your role: VULNERABILITY RESEARCHER
- Deep analysis of security vulnerabilities
- OWASP Top 10 assessment
- CVE research and correlation
- Risk scoring and prioritization
- Detailed exploitation prerequisites""",
    AgentType.EXPLOITATION: """
Your role: EXPLOITATION SPECIALIST
- Develop complete attack chains
- Identify exploitation paths
- Analyze exploitation feasibility
- Provide proof-of-concept guidance
- Assess real-world impact""",
    AgentType.REPORT: """
Your role: SECURITY REPORTER
- Generate executive summaries
- Create technical reports
- Develop remediation roadmaps
- Prioritize actions by business impact
- Communicate clearly to both technical and non-technical audiences""",
}

OUTPUT_FORMAT = """## Output Format

Structure your response with exactly these markdown headings, in this order:

## Executive Summary
<2-3 sentences on the next line: overall posture, most critical concern, business impact>

## Critical Issues
- <one bullet per issue that needs immediate attention, top 3-5>

## Risk Score
Risk Score: <integer 0-100>/100
<scoring rationale and risk factors>

## Prioritized Recommendations
- <one bullet per recommendation: quick wins first, then critical fixes, then long-term improvements>

## Attack Chains
<how the vulnerabilities could be chained; exploitation scenarios>

Be specific, technical, and actionable."""


def build_system_prompt(agent_type: AgentType | None = None) -> str:
    """
    Build the system prompt for an agent role.

    Args:
        agent_type: Role to specialise for; None gives the general analyst prompt.
    """
    if agent_type is None:
        return ANALYST_SYSTEM_PROMPT
    return BASE_SYSTEM_PROMPT + ROLE_PROMPTS.get(agent_type, "")


def format_findings(findings: Sequence[Finding]) -> str:
    """Render findings as numbered markdown blocks."""
    if not findings:
        return NO_FINDINGS_TEXT

    blocks = []
    for i, finding in enumerate(findings, 1):
        lines = [
            f"### Finding {i}: [{finding.severity.value}] {finding.title}",
            f"- **Category**: {finding.category}",
            f"- **Description**: {finding.description}",
        ]
        if finding.evidence:
            lines.append(f"- **Evidence**: {finding.evidence}")
        if finding.location:
            lines.append(f"- **Location**: {finding.location}")
        blocks.append("\n".join(lines))

    return "\n\n".join(blocks)


def build_analysis_prompt(target: str, findings: Sequence[Finding]) -> str:
    """Build the single-pass analysis prompt."""
    return f"""# Security Scan Analysis Request

## Target Information
- **Target**: {target}
- **Total Findings**: {len(findings)}

## Analysis Tasks

Please analyze these security findings and provide:

1. **Executive Summary** (2-3 sentences)
2. **Critical Issues** (top 3-5 vulnerabilities, with severity justification)
3. **Risk Score** (0-100) with scoring rationale
4. **Prioritized Recommendations** with implementation steps
5. **Attack Chains** combining multiple vulnerabilities, if applicable

## Scan Findings

{format_findings(findings)}

{OUTPUT_FORMAT}"""


def build_query_prompt(target: str, question: str) -> str:
    """Build the short question prompt."""
    return f"Target: {target}\nQuestion: {question.strip()}"


def build_recon_prompt(target: str, findings: Sequence[Finding]) -> str:
    """Stage 1 of the deep profile: attack surface framing."""
    return f"""# Reconnaissance Analysis

Analyze the target's attack surface:
- Exposed services and ports
- Technology stack and versions
- Configuration weaknesses
- Potential entry points

Target: {target}

Findings:
{format_findings(findings)}

Provide detailed reconnaissance insights. Start with an "## Executive Summary" heading."""


def build_vulnerability_prompt(target: str, findings: Sequence[Finding], recon_text: str) -> str:
    """Stage 2 of the deep profile: vulnerability framing informed by recon."""
    return f"""# Vulnerability Analysis

Based on the reconnaissance findings, perform deep vulnerability analysis:
- OWASP Top 10 vulnerabilities
- Known CVEs
- Configuration issues
- Security misconfigurations

Target: {target}

Reconnaissance Data:
{recon_text}

Scan Findings:
{format_findings(findings)}

Provide a comprehensive vulnerability assessment.

{OUTPUT_FORMAT}"""


def build_exploitation_prompt(target: str, recon_text: str, vulnerability_text: str) -> str:
    """Stage 3 of the deep profile: exploitation framing informed by both prior stages."""
    return f"""# Exploitation Analysis

Analyze exploitation possibilities:
- Complete attack chains
- Exploitation prerequisites
- Proof-of-concept approaches
- Real-world impact

Target: {target}

Reconnaissance:
{recon_text}

Vulnerabilities:
{vulnerability_text}

Provide a detailed exploitation assessment."""
