"""Sample skill catalog used to populate an empty directory."""

SKILL_CATEGORIES = [
    "Programming",
    "Design",
    "Languages",
    "Music",
    "Cooking",
    "Fitness",
    "Business",
    "Academic",
]

SAMPLE_SKILLS = [
    {
        "name": "JavaScript Programming",
        "description": "Learn modern JavaScript including ES6+ features, async/await, and more.",
        "category": "Programming",
        "estimated_hours": 10,
    },
    {
        "name": "React Development",
        "description": "Build interactive UIs with React, including hooks, context, and state management.",
        "category": "Programming",
        "estimated_hours": 15,
    },
    {
        "name": "Python Basics",
        "description": "Get started with Python programming language fundamentals.",
        "category": "Programming",
        "estimated_hours": 8,
    },
    {
        "name": "UI/UX Design",
        "description": "Learn principles of user interface and experience design.",
        "category": "Design",
        "estimated_hours": 12,
    },
    {
        "name": "Adobe Photoshop",
        "description": "Master image editing and manipulation with Photoshop.",
        "category": "Design",
        "estimated_hours": 20,
    },
    {
        "name": "Spanish Conversation",
        "description": "Practice conversational Spanish with a fluent speaker.",
        "category": "Languages",
        "estimated_hours": 15,
    },
    {
        "name": "French for Beginners",
        "description": "Learn basic French vocabulary, grammar, and pronunciation.",
        "category": "Languages",
        "estimated_hours": 20,
    },
    {
        "name": "Guitar Lessons",
        "description": "Learn to play guitar from basic chords to advanced techniques.",
        "category": "Music",
        "estimated_hours": 25,
    },
    {
        "name": "Piano Fundamentals",
        "description": "Get started with piano playing and music theory basics.",
        "category": "Music",
        "estimated_hours": 20,
    },
    {
        "name": "Italian Cooking",
        "description": "Learn to make authentic Italian dishes from scratch.",
        "category": "Cooking",
        "estimated_hours": 8,
    },
    {
        "name": "Baking Essentials",
        "description": "Master the fundamentals of baking breads, cakes, and pastries.",
        "category": "Cooking",
        "estimated_hours": 10,
    },
    {
        "name": "Yoga for Beginners",
        "description": "Learn basic yoga poses and breathing techniques.",
        "category": "Fitness",
        "estimated_hours": 6,
    },
    {
        "name": "Home Workout Routines",
        "description": "Effective exercise routines you can do without equipment.",
        "category": "Fitness",
        "estimated_hours": 5,
    },
    {
        "name": "Digital Marketing",
        "description": "Learn social media marketing, SEO, and content strategy.",
        "category": "Business",
        "estimated_hours": 15,
    },
    {
        "name": "Personal Finance",
        "description": "Budgeting, saving, and investing for beginners.",
        "category": "Business",
        "estimated_hours": 8,
    },
    {
        "name": "Mathematics Tutoring",
        "description": "Help with algebra, calculus, and other math subjects.",
        "category": "Academic",
        "estimated_hours": 10,
    },
    {
        "name": "Essay Writing",
        "description": "Improve your academic writing skills for better essays and papers.",
        "category": "Academic",
        "estimated_hours": 6,
    },
]
