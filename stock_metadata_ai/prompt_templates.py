"""
Prompt sent to the model along with each image.
"""

RESPONSE_FORMAT = """Response format:
TITLE- [primary professional title]
ALT_TITLE_1- [alternative title variation 1]
ALT_TITLE_2- [alternative title variation 2]
DESCRIPTION- [description here]
CATEGORY- [main category/theme like Business, Nature, Technology, People, Food, Travel, etc.]
KEYWORDS- {keyword_list}"""

STOCK_METADATA_PROMPT = """You are a professional Adobe Stock metadata generator. Analyze this image and provide:

1. A primary professional title (6-12 words) for Adobe Stock submission
2. Two alternative title variations (6-12 words each)
3. A detailed description (150-200 characters) for commercial use - if numbers are present, list them individually (1, 5, 10, 15...) not as ranges
4. A specific category that best describes the main subject/theme of the image
5. Exactly {keyword_count} COMPLETELY UNIQUE keywords in English for microstock sales

IMPORTANT: First analyze the image carefully for any numbers that appear in it. If numbers are present, incorporate them naturally into the titles where relevant.

Title requirements:
- Professional, SEO-friendly titles that precisely describe what is visible in the image
- 6-12 words maximum, using specific keywords related to the actual subject matter
- When multiple numbers appear, list them individually separated by commas (e.g. "1, 2, 3, 4, 5") rather than using ranges
- NO COLONS (:) - use ONLY ONE hyphen (-) to separate main subject from style/purpose (Main Subject - Style/Purpose)
- PROHIBITED CHARACTERS: & # @ ! % * () {{}} [] / + " ' > <
- USE INSTEAD: "and" (not &), "to" (not /), comma (,) for lists
- Mention: Subject + Style + Content Type + Purpose
- Content types: Logo, Poster, Seamless Pattern, Business Card, Infographic, Banner
- Styles: Minimal, Modern, Hand-drawn, Flat, 3D, Vintage, etc.
- Purposes: Branding, Print, Social Media, Fabric, Wallpaper, Marketing, etc.
- Example: "Gold Anniversary Badges 1, 5, 10, 15, 20, 25 Years - Vector Graphics for Print"
- No generic words like "image", "photo", "picture"

Alternative titles should offer different angles on the same content, use different relevant keyword combinations and follow the same formatting rules.

Keyword requirements:
- Generate exactly {keyword_count} commercially valuable keywords that actual buyers search for
- Distribute them across business, design, industry, emotion, usage, visual, style and purpose terms
- Check every keyword against all others and remove any word that could replace another in a search
- No root word variations (design/designer) and no conceptual overlaps (sunset/evening, car/vehicle)
- Include materials, objects, industries and purposes; at most one emotion and one action
- Single words preferred, technical terms max 2 words
- Order keywords from most to least relevant

{response_format}

If ANY two keywords are similar, synonymous, or could be used interchangeably, the task has failed. Each must be semantically unique."""


def get_stock_metadata_prompt(keyword_count: int = 50) -> str:
    """
    Build the instruction prompt for microstock metadata.

    Args:
        keyword_count: Number of keywords to request

    Returns:
        Prompt text
    """
    keyword_list = ", ".join(f"keyword{i}" for i in range(1, keyword_count + 1))
    return STOCK_METADATA_PROMPT.format(
        keyword_count=keyword_count,
        response_format=RESPONSE_FORMAT.format(keyword_list=keyword_list),
    )
