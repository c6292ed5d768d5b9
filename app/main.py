"""Gradio front end for prompt-to-image generation."""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Tuple

import gradio as gr

from app.config import settings
from creative_studio.core.exceptions import GenerationInProgressError, ValidationError
from creative_studio.core.models import GenerationParams, GenerationState, Theme
from creative_studio.core.orchestrator import GenerationOrchestrator
from creative_studio.core.payload_builder import PayloadBuilder
from creative_studio.services.http_service import HttpGenerationService
from creative_studio.utils.export import cache_for_display
from creative_studio.utils.persistence import FileStorage, PersistenceStore

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

BUSY_MESSAGE = "⏳ A generation is already in progress"

# Applies the theme class to the page; receives "dark" or "light".
APPLY_THEME_JS = """
(theme) => {
    document.body.classList.toggle('dark', theme === 'dark');
    return theme;
}
"""

# Global orchestrator instance, created on first use
orchestrator: Optional[GenerationOrchestrator] = None

# Builder holding the last-used parameters; replaced after every success
builder: Optional[PayloadBuilder] = None


def default_params() -> GenerationParams:
    """Generation defaults taken from the settings."""
    return GenerationParams(
        width=settings.default_width,
        height=settings.default_height,
        steps=settings.default_steps,
        guidance_scale=settings.default_guidance_scale,
        seed=settings.default_seed,
        negative_prompt=settings.default_negative_prompt,
    )


def create_orchestrator() -> GenerationOrchestrator:
    """Create the orchestrator with the HTTP service and file-backed store.

    Raises:
        ValueError: If required configuration is invalid
    """
    settings.validate_settings()

    store = PersistenceStore(
        FileStorage(settings.state_dir),
        max_history=settings.max_history
    )
    service = HttpGenerationService(
        settings.generation_endpoint,
        timeout=settings.request_timeout
    )
    return GenerationOrchestrator(
        service,
        store,
        persist_batch_history=settings.persist_batch_history
    )


def get_orchestrator() -> GenerationOrchestrator:
    """Return the shared orchestrator, creating it if needed."""
    global orchestrator
    if orchestrator is None:
        orchestrator = create_orchestrator()
    return orchestrator


def get_builder() -> PayloadBuilder:
    """Return the builder with the last-used parameters as defaults."""
    global builder
    if builder is None:
        builder = PayloadBuilder(default_params())
    return builder


def form_defaults() -> Tuple[str, int, int, int, float, int]:
    """Current builder defaults, in the order of the form controls."""
    params = get_builder().defaults
    return (
        params.negative_prompt,
        params.width,
        params.height,
        params.steps,
        params.guidance_scale,
        params.seed,
    )


async def shutdown() -> None:
    """Close the generation service of the shared orchestrator."""
    global orchestrator
    if orchestrator is not None:
        await orchestrator.service.aclose()
        orchestrator = None
        logger.info("Generation service closed")


def _cache_dir() -> Path:
    return Path(settings.state_dir) / "cache"


def format_status(state: GenerationState) -> str:
    """Turn a settled state into the status line shown under the results."""
    if state.failed:
        return f"❌ {state.error}"
    if state.succeeded:
        count = len(state.results)
        noun = "image" if count == 1 else "images"
        return f"✅ Generated {count} {noun} for: {state.results[0].prompt}"
    return ""


def result_gallery(state: GenerationState) -> List[str]:
    """Displayable references for the results of ``state``."""
    return [cache_for_display(r.image, _cache_dir()) for r in state.results]


def get_history_gallery() -> List[Tuple[str, str]]:
    """History formatted for a Gradio Gallery, most recent first."""
    items = []
    for entry in get_orchestrator().store.history:
        caption = entry.prompt if len(entry.prompt) <= 60 else f"{entry.prompt[:60]}..."
        items.append((cache_for_display(entry.image, _cache_dir()), caption))
    return items


async def generate_images(
    prompt: str,
    count: int = 1,
    negative_prompt: Optional[str] = None,
    width: Optional[int] = None,
    height: Optional[int] = None,
    steps: Optional[int] = None,
    guidance_scale: Optional[float] = None,
    seed: Optional[int] = None
) -> Tuple[List[str], str, list]:
    """Generate one or more images from the form values.

    Values left as None fall back to the last-used parameters.

    Returns:
        Tuple of (result images, status message, history gallery)
    """
    global builder
    gen = get_orchestrator()
    form = {
        "negative_prompt": negative_prompt.strip() if negative_prompt is not None else None,
        "width": int(width) if width is not None else None,
        "height": int(height) if height is not None else None,
        "steps": int(steps) if steps is not None else None,
        "guidance_scale": float(guidance_scale) if guidance_scale is not None else None,
        "seed": int(seed) if seed is not None else None,
    }
    overrides = {name: value for name, value in form.items() if value is not None}

    try:
        request = get_builder().build(prompt, overrides)
    except ValidationError as e:
        return [], f"❌ {e.message}", get_history_gallery()

    try:
        state = await gen.generate(request, int(count))
    except GenerationInProgressError:
        return result_gallery(gen.state), BUSY_MESSAGE, get_history_gallery()

    if state.succeeded:
        builder = get_builder().remember(request)

    return result_gallery(state), format_status(state), get_history_gallery()


async def regenerate_images() -> Tuple[List[str], str, list]:
    """Repeat the last successful generation."""
    gen = get_orchestrator()
    try:
        state = await gen.regenerate()
    except GenerationInProgressError:
        return result_gallery(gen.state), BUSY_MESSAGE, get_history_gallery()

    return result_gallery(state), format_status(state), get_history_gallery()


def copy_prompt() -> str:
    """Return the last successful prompt for the copyable textbox."""
    copied: List[str] = []
    get_orchestrator().copy_last_prompt(copied.append)
    return copied[0] if copied else ""


def download_image() -> Optional[str]:
    """Export the first displayed image and return its path for download."""
    try:
        path = get_orchestrator().export_current_image(settings.export_dir)
    except Exception as e:
        logger.error(f"Failed to export image: {e}")
        return None
    return str(path) if path else None


def clear_history() -> Tuple[list, str]:
    """Clear the persisted history."""
    get_orchestrator().store.clear()
    return [], "History cleared"


def current_theme() -> str:
    """Stored theme preference."""
    return get_orchestrator().store.theme.value


def toggle_theme() -> str:
    """Switch theme and return the new value."""
    theme = get_orchestrator().store.toggle_theme()
    logger.info(f"Theme set to {theme.value}")
    return theme.value


def create_ui():
    """Create the Gradio interface."""
    with gr.Blocks(title="AI Creative Studio") as demo:
        gr.Markdown("# 🎨 AI Creative Studio")
        theme_state = gr.State(Theme.DARK.value)

        with gr.Tabs():
            with gr.Tab("🎨 Generate"):
                with gr.Row():
                    with gr.Column(scale=1):
                        prompt_input = gr.Textbox(
                            label="Prompt",
                            placeholder="✨ Describe the image you want to generate...",
                            lines=3
                        )
                        negative_prompt_input = gr.Textbox(
                            label="Negative Prompt",
                            value=settings.default_negative_prompt,
                            lines=2
                        )
                        count_slider = gr.Slider(
                            minimum=1,
                            maximum=settings.max_image_count,
                            value=1,
                            step=1,
                            label="Number of Images"
                        )

                        with gr.Accordion("⚙️ Advanced Settings", open=False):
                            with gr.Row():
                                width_slider = gr.Slider(
                                    minimum=256, maximum=1024, step=64,
                                    value=settings.default_width, label="Width"
                                )
                                height_slider = gr.Slider(
                                    minimum=256, maximum=1024, step=64,
                                    value=settings.default_height, label="Height"
                                )
                            steps_slider = gr.Slider(
                                minimum=1, maximum=150, step=1,
                                value=settings.default_steps, label="Steps"
                            )
                            guidance_slider = gr.Slider(
                                minimum=0.0, maximum=30.0, step=0.5,
                                value=settings.default_guidance_scale, label="Guidance Scale"
                            )
                            seed_input = gr.Number(
                                value=settings.default_seed, precision=0,
                                label="Seed (-1 = random)"
                            )

                        with gr.Row():
                            generate_btn = gr.Button("🎨 Generate Image", variant="primary")
                            regenerate_btn = gr.Button("🔄 Regenerate")
                        with gr.Row():
                            copy_btn = gr.Button("📋 Copy Prompt", size="sm")
                            download_btn = gr.Button("💾 Download", size="sm")
                            theme_btn = gr.Button("🌓 Toggle Theme", size="sm")

                        copied_prompt = gr.Textbox(
                            label="Last Prompt",
                            interactive=False,
                            show_copy_button=True
                        )
                        download_file = gr.File(label="Download")

                    with gr.Column(scale=1):
                        output_gallery = gr.Gallery(label="Preview", columns=2, height=420)
                        status_output = gr.Textbox(label="Status", interactive=False)

            with gr.Tab("📸 History"):
                clear_history_btn = gr.Button("🗑️ Clear History", variant="stop")
                history_status = gr.Textbox(label="", interactive=False)
                history_gallery = gr.Gallery(label="History", columns=4, height="auto")

        generate_btn.click(
            fn=generate_images,
            inputs=[
                prompt_input, count_slider, negative_prompt_input,
                width_slider, height_slider, steps_slider, guidance_slider, seed_input
            ],
            outputs=[output_gallery, status_output, history_gallery],
            concurrency_limit=1
        )
        regenerate_btn.click(
            fn=regenerate_images,
            outputs=[output_gallery, status_output, history_gallery],
            concurrency_limit=1
        )
        copy_btn.click(fn=copy_prompt, outputs=copied_prompt)
        download_btn.click(fn=download_image, outputs=download_file)
        theme_btn.click(fn=toggle_theme, outputs=theme_state).then(
            fn=None, inputs=theme_state, js=APPLY_THEME_JS
        )
        clear_history_btn.click(fn=clear_history, outputs=[history_gallery, history_status])

        demo.load(fn=current_theme, outputs=theme_state).then(
            fn=None, inputs=theme_state, js=APPLY_THEME_JS
        )
        demo.load(fn=get_history_gallery, outputs=history_gallery)
        demo.load(
            fn=form_defaults,
            outputs=[
                negative_prompt_input, width_slider, height_slider,
                steps_slider, guidance_slider, seed_input
            ]
        )

    return demo


if __name__ == "__main__":
    demo = create_ui()

    logger.info("Launching Gradio application...")
    try:
        demo.launch(
            server_name=settings.server_name,
            server_port=settings.server_port,
            share=False
        )
    finally:
        asyncio.run(shutdown())
