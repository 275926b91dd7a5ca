import streamlit as st
import os
import sys
import asyncio
import logging
from typing import Any, Dict, Optional

from file_utils import ExtractionError, decode_image_reference
from image_archive import DEFAULT_OUTPUT_DIR, ResultArchive
from image_flows import EditImageFlow, GenerateImageFlow, ImageFlow, Phase, UploadedImage
from image_service import ImageService

logger = logging.getLogger(__name__)

ACCEPTED_TYPES = ["png", "jpg", "jpeg", "webp"]

# Configure Streamlit page
st.set_page_config(
    page_title="AI Image Studio",
    page_icon="🎨",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.markdown("""
<style>
.result-placeholder {
    border: 2px dashed #4b5563;
    border-radius: 8px;
    padding: 40px 10px;
    text-align: center;
    color: #6b7280;
}
.upload-hint { color: #6b7280; font-size: 0.8em; }
</style>
""", unsafe_allow_html=True)


class ImageStudioApp:
    """Streamlit front end for the edit and generate flows"""

    def __init__(self):
        self.initialize_session_state()

    def initialize_session_state(self):
        """Initialize all session state variables"""
        defaults = {
            "api_key": os.getenv("OPENAI_API_KEY"),
            "service": None,
            "edit_flow": None,
            "generate_flow": None,
            "gallery": [],
            "save_results": bool(os.getenv("IMAGE_STUDIO_OUTPUT_DIR")),
            "archive": None,
            "pending_submit": None,
        }

        for key, default_value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = default_value

        if st.session_state.api_key and st.session_state.service is None:
            self.set_api_key(st.session_state.api_key)

        if st.session_state.edit_flow is None:
            st.session_state.edit_flow = EditImageFlow(st.session_state.service)
        if st.session_state.generate_flow is None:
            st.session_state.generate_flow = GenerateImageFlow(st.session_state.service)
        if st.session_state.archive is None:
            st.session_state.archive = ResultArchive(os.getenv("IMAGE_STUDIO_OUTPUT_DIR") or DEFAULT_OUTPUT_DIR)

    def set_api_key(self, api_key: str) -> bool:
        """Create the image service and hand it to both flows"""
        try:
            service = ImageService(api_key=api_key)
        except ValueError as e:
            st.error(str(e))
            return False

        st.session_state.api_key = api_key
        st.session_state.service = service
        for key in ("edit_flow", "generate_flow"):
            flow = st.session_state.get(key)
            if flow is not None:
                flow.service = service
        return True

    def clear_all(self):
        """Tear down both flows and start a fresh session"""
        for key, flow_class in (("edit_flow", EditImageFlow), ("generate_flow", GenerateImageFlow)):
            st.session_state[key].close()
            st.session_state[key] = flow_class(st.session_state.service)
        for key in ("edit_prompt", "generate_prompt", "edit_upload"):
            if key in st.session_state:
                del st.session_state[key]
        st.session_state.gallery = []
        st.session_state.pending_submit = None
        st.session_state.archive = ResultArchive(st.session_state.archive.base_dir)

    def sync_upload(self, flow: EditImageFlow, uploaded: Any):
        """Only a new selection replaces the flow's image"""
        if uploaded is None:
            if flow.image is not None:
                flow.select_image(None)
            return

        current_id = flow.image.source_id if flow.image else None
        if current_id is None or current_id != getattr(uploaded, "file_id", None):
            flow.select_image(UploadedImage.from_upload(uploaded))

    def record_result(self, flow: ImageFlow, image_url: str):
        """Add a successful result to the gallery and archive it if enabled"""
        try:
            image_bytes = decode_image_reference(image_url)
        except ExtractionError as e:
            logger.error(f"Could not decode {flow.name} result: {e}")
            return

        entry: Dict[str, Any] = {
            "flow": flow.name,
            "prompt": flow.prompt,
            "image_bytes": image_bytes,
            "filepath": None,
        }

        if st.session_state.save_results:
            source_image = flow.image.name if isinstance(flow, EditImageFlow) and flow.image else ""
            try:
                entry["filepath"] = st.session_state.archive.save(
                    flow.name, flow.prompt, image_bytes,
                    source_image=source_image,
                    model=getattr(flow.service, "model", ""),
                )
            except OSError as e:
                logger.error(f"Failed to save {flow.name} result: {e}")
                st.warning(f"Could not save result to disk: {e}")

        st.session_state.gallery.append(entry)

    def run_flow(self, flow: ImageFlow):
        """Run one submit to completion and record a successful result"""
        state = asyncio.run(flow.submit())
        if state.phase is Phase.SUCCESS:
            self.record_result(flow, state.image_url)

    def render_result(self, flow: ImageFlow, placeholder: str, download_name: str):
        state = flow.state
        if state.image_url:
            try:
                image_bytes = decode_image_reference(state.image_url)
            except ExtractionError:
                st.error("The returned image could not be displayed.")
                return
            st.image(image_bytes, caption=flow.prompt)
            st.download_button(
                label="📥 Download",
                data=image_bytes,
                file_name=download_name,
                mime="image/png",
                key=f"download_{flow.name}"
            )
        else:
            st.markdown(f'<div class="result-placeholder">{placeholder}</div>', unsafe_allow_html=True)

    def is_pending(self, flow: ImageFlow) -> bool:
        return st.session_state.pending_submit == flow.name

    def controls_disabled(self, flow: ImageFlow) -> bool:
        """Inputs stay disabled for the whole run that performs the call"""
        return flow.is_busy or self.is_pending(flow)

    def request_submit(self, flow: ImageFlow):
        """Mark the flow as pending and rerun so the controls render disabled first"""
        st.session_state.pending_submit = flow.name
        st.rerun()

    def run_pending(self, flow: ImageFlow, spinner_text: str):
        """Perform a pending submit, then rerun to re-enable the controls"""
        if not self.is_pending(flow):
            return
        try:
            with st.spinner(spinner_text):
                self.run_flow(flow)
        finally:
            st.session_state.pending_submit = None
        st.rerun()

    def render_edit_tab(self):
        flow: EditImageFlow = st.session_state.edit_flow
        disabled = self.controls_disabled(flow)
        controls_col, result_col = st.columns(2)

        with controls_col:
            uploaded = st.file_uploader(
                "1. Upload Image",
                type=ACCEPTED_TYPES,
                key="edit_upload",
                disabled=disabled,
                help="PNG, JPG, WEBP up to 10MB"
            )
            if not disabled:
                self.sync_upload(flow, uploaded)

            if flow.image is not None:
                st.image(flow.image.content, caption=flow.image.name, width=128)
            else:
                st.markdown('<p class="upload-hint">PNG, JPG, WEBP up to 10MB</p>', unsafe_allow_html=True)

            prompt = st.text_area(
                "2. Describe Your Edit",
                key="edit_prompt",
                height=120,
                placeholder="e.g., Add a retro filter, or Remove the person in the background",
                disabled=disabled
            )
            flow.set_prompt(prompt or "")

            if st.button("✨ Edit Image", type="primary", key="edit_submit",
                         disabled=disabled or not flow.can_submit()):
                self.request_submit(flow)
            message_slot = st.empty()

        with result_col:
            st.subheader("Edited Image")
            self.run_pending(flow, "The model is thinking...")
            self.render_result(flow, "Your edited image will appear here.", "edited_image.png")

        if flow.state.error:
            message_slot.error(flow.state.error)

    def render_generate_tab(self):
        flow: GenerateImageFlow = st.session_state.generate_flow
        disabled = self.controls_disabled(flow)
        controls_col, result_col = st.columns(2)

        with controls_col:
            prompt = st.text_area(
                "1. Describe The Image You Want",
                key="generate_prompt",
                height=180,
                placeholder="e.g., A photo of an astronaut riding a horse on Mars, cinematic lighting.",
                disabled=disabled
            )
            flow.set_prompt(prompt or "")

            if st.button("✨ Generate Image", type="primary", key="generate_submit",
                         disabled=disabled or not flow.can_submit()):
                self.request_submit(flow)
            message_slot = st.empty()

        with result_col:
            st.subheader("Generated Image")
            self.run_pending(flow, "Creating your image...")
            self.render_result(flow, "🖼️ Your generated image will appear here.", "generated_image.png")

        if flow.state.error:
            message_slot.error(flow.state.error)

    def render_sidebar(self):
        with st.sidebar:
            st.header("⚙️ Settings")

            save = st.checkbox("Save results to disk", st.session_state.save_results)
            if save != st.session_state.save_results:
                st.session_state.save_results = save
            if st.session_state.save_results:
                st.caption(f"Saving to `{st.session_state.archive.base_dir}`")

            st.divider()

            st.subheader("📊 Session Stats")
            st.metric("Total Images", len(st.session_state.gallery))
            st.metric("Runs", st.session_state.edit_flow.runs + st.session_state.generate_flow.runs)

            if st.button("🗑️ Clear All"):
                self.clear_all()
                st.rerun()

            st.divider()

            st.subheader("📖 Quick Guide")
            st.markdown("""
            **Edit:** upload an image, describe the change, press *Edit Image*.

            **Generate:** describe the image, press *Generate Image*.

            Results can be downloaded below each image.
            """)

    def render_ui(self):
        """Render the main UI"""
        st.title("🎨 AI Image Studio")
        st.markdown("*Edit an image with a prompt, or generate a new one from text*")

        with st.container():
            col1, col2 = st.columns([3, 1])
            with col1:
                api_key = st.text_input(
                    "🔑 Enter your OpenAI API Key:",
                    type="password",
                    placeholder="sk-...",
                    help="Your API key is not stored and must be entered each session"
                )
            with col2:
                st.write("")  # Spacing
                if st.button("Set API Key", type="primary"):
                    if api_key:
                        if self.set_api_key(api_key):
                            st.rerun()
                    else:
                        st.error("Please enter an API key")

        if not st.session_state.api_key:
            st.warning("⚠️ Please enter your OpenAI API key to continue")
            return

        edit_tab, generate_tab = st.tabs(["✏️ Edit Image", "✨ Generate Image"])
        with edit_tab:
            self.render_edit_tab()
        with generate_tab:
            self.render_generate_tab()

        self.render_sidebar()


def main():
    """Main application entry point"""
    app = ImageStudioApp()
    app.render_ui()


def run(argv: Optional[list] = None):
    """Console entry point: ``image-studio`` launches the Streamlit app."""
    from streamlit.web import cli as stcli

    sys.argv = ["streamlit", "run", os.path.abspath(__file__)] + list(argv or sys.argv[1:])
    sys.exit(stcli.main())


if __name__ == "__main__":
    main()
