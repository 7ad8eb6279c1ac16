"""
Shared assistant copy used by tool plugins.
"""

from __future__ import annotations


MOCK_REPLY_TEMPLATE = (
    "Thank you for your message. This is a mock response for the {tool} tool. "
    "In a real implementation, this would be connected to an AI service that "
    "provides relevant assistance based on the selected tool."
)


RESUME_WELCOME = """Welcome to the Resume Enhancer! 📄

I'll help you improve your resume for better ATS compatibility and overall impact. Here's what I can do:

• Analyze formatting and structure
• Optimize keywords for specific roles
• Improve content clarity and impact
• Ensure ATS compliance
• Suggest better action words and quantifiable achievements

Please upload your resume (PDF or DOCX) to get started, or tell me about the role you're targeting."""


INTERVIEW_WELCOME = """Welcome to the Interview Coach! 🎯

I'll help you prepare for your upcoming interviews with personalized practice sessions. Here's how it works:

• Tell me the role you're interviewing for
• Choose specific topics to focus on (technical, behavioral, company-specific)
• I'll ask realistic interview questions
• Get real-time feedback on your responses
• Track which key points you've covered

What role are you preparing for? (e.g., "Frontend Developer", "Product Manager", "Data Scientist")"""


COVER_LETTER_WELCOME = """Welcome to the Cover Letter Writer! ✍️

I'll help you create compelling, personalized cover letters that stand out. Here's what I need:

• Your resume (for experience and background)
• The job description you're applying for
• Any specific company information or requirements

I'll craft a cover letter that:
• Matches keywords from the job description
• Highlights relevant experiences
• Shows genuine interest in the company
• Maintains a professional yet engaging tone

Please upload your resume and paste the job description to get started."""


PORTFOLIO_WELCOME = """Welcome to the Portfolio Builder! 🚀

I'll help you create a professional portfolio that showcases your work effectively. Here's the process:

• Share details about your projects (title, technologies, description)
• Upload screenshots or images if you have them
• I'll rewrite descriptions professionally
• Generate a mini portfolio website with optimized layout
• Ensure your work is presented in the best light

Tell me about your first project, or describe what kind of portfolio you want to create (e.g., "Web Developer Portfolio", "UX Designer Portfolio")."""
